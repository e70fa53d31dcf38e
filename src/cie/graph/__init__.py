from .knowledge_graph import GraphSnapshot, KnowledgeGraph, node_from_record
from .similarity import PairScore, score_pair

__all__ = ["GraphSnapshot", "KnowledgeGraph", "node_from_record", "PairScore", "score_pair"]
