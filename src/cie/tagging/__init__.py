from .hierarchy import TagHierarchy
from .tagger import SemanticTagger, temporal_bucket

__all__ = ["TagHierarchy", "SemanticTagger", "temporal_bucket"]
