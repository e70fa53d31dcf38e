"""Pairwise similarity scoring between graph nodes."""

import math
from dataclasses import dataclass
from datetime import datetime

from ..extraction.text import jaccard, whitespace_tokens
from ..models import ConnectionType, GraphNode

TITLE_WEIGHT = 0.3
BODY_WEIGHT = 0.4
TEMPORAL_WEIGHT = 0.2
SOURCE_WEIGHT = 0.1


@dataclass(frozen=True)
class PairScore:
    title: float
    body: float
    temporal: float
    same_source: float

    @property
    def total(self) -> float:
        return (
            TITLE_WEIGHT * self.title
            + BODY_WEIGHT * self.body
            + TEMPORAL_WEIGHT * self.temporal
            + SOURCE_WEIGHT * self.same_source
        )

    @property
    def connection_type(self) -> ConnectionType:
        """Pick the type from whichever signal dominates, checked in fixed order."""
        if self.title > 0.7:
            return ConnectionType.SIMILAR_TOPIC
        if self.body > 0.6:
            return ConnectionType.RELATED_CONTENT
        if self.temporal > 0.8:
            return ConnectionType.TEMPORALLY_RELATED
        return ConnectionType.WEAKLY_RELATED

    @property
    def evidence(self) -> str:
        return (
            f"{round(self.total * 100)}% similar "
            f"(title {round(self.title * 100)}%, body {round(self.body * 100)}%)"
        )


def decay(delta_seconds: float, window_days: float) -> float:
    """exp(-|dt| / window): 1.0 for simultaneous events."""
    return math.exp(-abs(delta_seconds) / (window_days * 86400))


def text_similarity(a: str, b: str) -> float:
    """Token Jaccard, with identical texts (two empty ones included) scoring 1.0."""
    tokens_a, tokens_b = whitespace_tokens(a), whitespace_tokens(b)
    if tokens_a == tokens_b:
        return 1.0
    return jaccard(tokens_a, tokens_b)


def score_pair(a: GraphNode, b: GraphNode, window_days: float = 7) -> PairScore:
    return PairScore(
        title=text_similarity(a.title, b.title),
        body=text_similarity(a.body, b.body),
        temporal=decay((a.created_at - b.created_at).total_seconds(), window_days),
        same_source=1.0 if a.source == b.source else 0.0,
    )


def recency(created_at: datetime, now: datetime, window_days: float = 7) -> float:
    return decay((now - created_at).total_seconds(), window_days)
