"""Insight clustering: OPTICS topics over TF-IDF plus attribute groupings."""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Any

import numpy as np

from ..models import ClusterType, GraphNode, InsightCluster

logger = logging.getLogger(__name__)


def topic_clusters(nodes: list[GraphNode], config: dict[str, Any], now: datetime | None = None) -> list[InsightCluster]:
    """Run OPTICS clustering on TF-IDF vectors of node text.

    Returns one InsightCluster per non-noise label.
    """
    from sklearn.cluster import OPTICS
    from sklearn.feature_extraction.text import TfidfVectorizer

    if len(nodes) < 3:
        return []

    documents = [" ".join([n.title, n.body, " ".join(n.keywords)]) for n in nodes]
    vectorizer = TfidfVectorizer(stop_words="english", lowercase=True)
    try:
        matrix = vectorizer.fit_transform(documents).toarray()
    except ValueError:
        # Only stop words or empty documents
        logger.debug("No vocabulary for topic clustering")
        return []

    # Cosine distance is undefined for all-zero rows
    keep = [i for i, row in enumerate(matrix) if np.any(row)]
    if len(keep) < 3:
        return []
    vectors = matrix[keep]
    members = [nodes[i] for i in keep]

    optics_cfg = config.get("graph", {}).get("optics", {})
    min_samples = optics_cfg.get("min_samples", 2)
    xi = optics_cfg.get("xi", 0.05)
    min_cluster_size = optics_cfg.get("min_cluster_size", 2)

    # Adjust min_samples if we have fewer points
    min_samples = min(min_samples, len(vectors))

    optics = OPTICS(
        min_samples=min_samples,
        xi=xi,
        min_cluster_size=min_cluster_size,
        metric="cosine",
    )
    labels = optics.fit_predict(vectors)

    groups: dict[int, list[int]] = {}
    for idx, label in enumerate(labels):
        if label == -1:  # noise
            continue
        groups.setdefault(int(label), []).append(idx)

    terms = vectorizer.get_feature_names_out()
    results = []
    for label, member_indices in sorted(groups.items()):
        if len(member_indices) < 2:
            continue
        member_vectors = vectors[member_indices]
        centroid = member_vectors.mean(axis=0)
        top_terms = [terms[i] for i in np.argsort(centroid)[::-1][:3] if centroid[i] > 0]

        norms = np.linalg.norm(member_vectors, axis=1) * np.linalg.norm(centroid) + 1e-8
        cohesion = float(np.mean(member_vectors @ centroid / norms))

        results.append(InsightCluster(
            title=f"Topic: {', '.join(top_terms)}",
            description=f"{len(member_indices)} items about {', '.join(top_terms)}",
            items=[members[i].content_id for i in member_indices],
            confidence=min(max(cohesion, 0.0), 1.0),
            cluster_type=ClusterType.TOPIC,
            created_at=now or datetime.now(),
        ))
    return results


def _grouped(
    nodes: list[GraphNode],
    keys_of,
    cluster_type: ClusterType,
    confidence: float,
    title_format: str,
    now: datetime,
) -> list[InsightCluster]:
    groups: dict[str, list[str]] = defaultdict(list)
    for node in nodes:
        for key in keys_of(node):
            if node.content_id not in groups[key]:
                groups[key].append(node.content_id)
    return [
        InsightCluster(
            title=title_format.format(key=key),
            description=f"{len(ids)} items",
            items=ids,
            confidence=confidence,
            cluster_type=cluster_type,
            created_at=now,
        )
        for key, ids in groups.items()
        if len(ids) >= 2
    ]


def build_insight_clusters(
    nodes: list[GraphNode],
    config: dict[str, Any],
    now: datetime | None = None,
) -> list[InsightCluster]:
    now = now or datetime.now()
    clusters = topic_clusters(nodes, config, now=now)
    clusters += _grouped(
        nodes, lambda n: sorted({e.lower() for e in n.entities}), ClusterType.ENTITY, 0.8,
        "Mentions {key}", now,
    )
    clusters += _grouped(
        nodes, lambda n: [n.created_at.date().isoformat()], ClusterType.TEMPORAL, 0.6,
        "Captured on {key}", now,
    )
    clusters += _grouped(
        nodes, lambda n: [n.content_type.value], ClusterType.CONTENT_TYPE, 0.5,
        "{key} content", now,
    )
    clusters += _grouped(
        nodes, lambda n: [n.source], ClusterType.SOURCE, 0.5,
        "From {key}", now,
    )
    logger.info(f"Built {len(clusters)} insight clusters from {len(nodes)} nodes")
    return clusters
