from .index import SearchIndex
from .retrieval import SearchEngine, classify_intent

__all__ = ["SearchIndex", "SearchEngine", "classify_intent"]
