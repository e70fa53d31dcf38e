"""In-memory knowledge graph: chunked batch insertion, centrality, clusters, traversal."""

import logging
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import datetime
from itertools import combinations
from typing import Any, Callable

from ..config import DEFAULT_CONFIG
from ..errors import GraphIntegrityError
from ..extraction.text import jaccard
from ..models import (
    AnalysisResult,
    ContentRecord,
    ContentRelationship,
    GraphCluster,
    GraphNode,
    GraphStructure,
    InsightCluster,
    SemanticConnection,
)
from .similarity import recency, score_pair

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphSnapshot:
    """Point-in-time copy of the graph for readers."""
    nodes: tuple[GraphNode, ...]
    connections: tuple[SemanticConnection, ...]

    def node(self, node_id: str) -> GraphNode | None:
        for n in self.nodes:
            if n.content_id == node_id:
                return n
        return None


def node_from_record(record: ContentRecord, analysis: AnalysisResult | None = None) -> GraphNode:
    return GraphNode(
        content_id=record.id,
        title=record.title,
        content_type=record.type,
        source=record.source,
        created_at=record.created_at,
        body=record.full_text,
        keywords=list(analysis.keywords) if analysis else [],
        entities=[e.text for e in analysis.entities] if analysis else [],
    )


class KnowledgeGraph:
    """Nodes are content records; edges are semantic connections above a threshold.

    All mutation goes through insert_batch() and remove(), serialized by one lock.
    Readers use snapshot() or the query methods, which copy under the lock.
    """

    def __init__(self, config: dict[str, Any] | None = None, clock: Callable[[], datetime] = datetime.now):
        self.config = config or DEFAULT_CONFIG
        graph_cfg = self.config.get("graph", {})
        self.chunk_size = graph_cfg.get("chunk_size", 10)
        self.edge_threshold = graph_cfg.get("edge_threshold", 0.3)
        self.cluster_threshold = graph_cfg.get("cluster_threshold", 0.7)
        self.window_days = graph_cfg.get("temporal_window_days", 7)
        self.max_workers = graph_cfg.get("max_workers", 4)
        self.clock = clock

        self._lock = threading.RLock()
        self._nodes: dict[str, GraphNode] = {}
        self._adjacency: dict[str, dict[str, SemanticConnection]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        with self._lock:
            return node_id in self._nodes

    # --- Insertion ---

    def insert_batch(
        self,
        records: list[ContentRecord],
        analyses: dict[str, AnalysisResult] | None = None,
        cancel: threading.Event | None = None,
    ) -> GraphStructure:
        """Insert records, scoring pairs within fixed-size chunks only.

        Chunks are scored concurrently and committed one at a time; each
        chunk's nodes and edges become visible together. Setting `cancel`
        abandons the chunks not yet committed.

        Raises:
            GraphIntegrityError: if an id is repeated or already in the graph.
        """
        analyses = analyses or {}
        self.check_new_ids([r.id for r in records])

        nodes = [node_from_record(r, analyses.get(r.id)) for r in records]
        chunks = [nodes[i:i + self.chunk_size] for i in range(0, len(nodes), self.chunk_size)]

        committed_nodes: list[GraphNode] = []
        committed_edges: list[SemanticConnection] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [pool.submit(self._score_chunk, chunk) for chunk in chunks]
            for i, (chunk, future) in enumerate(zip(chunks, futures)):
                if cancel is not None and cancel.is_set():
                    for pending in futures[i:]:
                        pending.cancel()
                    logger.warning(f"Graph insertion cancelled after {i}/{len(chunks)} chunks")
                    break
                edges = future.result()
                self._commit(chunk, edges)
                committed_nodes.extend(chunk)
                committed_edges.extend(edges)

        logger.info(
            f"Inserted {len(committed_nodes)} nodes with {len(committed_edges)} connections"
        )
        with self._lock:
            stored = [self._nodes[n.content_id] for n in committed_nodes if n.content_id in self._nodes]
            nodes_out = [replace(n) for n in stored]
        return GraphStructure(nodes=nodes_out, connections=committed_edges, clusters=self.clusters())

    def check_new_ids(self, ids: list[str]) -> None:
        """Raise GraphIntegrityError if ids repeat or are already in the graph."""
        seen = set()
        with self._lock:
            for node_id in ids:
                if node_id in seen:
                    raise GraphIntegrityError(f"Duplicate id in batch: {node_id}")
                if node_id in self._nodes:
                    raise GraphIntegrityError(f"Node already in graph: {node_id}")
                seen.add(node_id)

    def _score_chunk(self, chunk: list[GraphNode]) -> list[SemanticConnection]:
        edges = []
        for a, b in combinations(chunk, 2):
            score = score_pair(a, b, self.window_days)
            total = score.total
            if total <= self.edge_threshold:
                continue
            edges.append(SemanticConnection(
                from_id=a.content_id,
                to_id=b.content_id,
                strength=min(total, 1.0),
                connection_type=score.connection_type,
                evidence=score.evidence,
            ))
        return edges

    def _commit(self, chunk: list[GraphNode], edges: list[SemanticConnection]) -> None:
        with self._lock:
            # Re-check: another writer may have inserted these ids since validation
            self.check_new_ids([n.content_id for n in chunk])
            for node in chunk:
                self._nodes[node.content_id] = node
                self._adjacency[node.content_id] = {}
            for edge in edges:
                self._adjacency[edge.from_id][edge.to_id] = edge
                self._adjacency[edge.to_id][edge.from_id] = edge
            self._refresh_weights()

    def _refresh_weights(self) -> None:
        now = self.clock()
        for node_id, node in self._nodes.items():
            node.weight = (
                0.5 * recency(node.created_at, now, self.window_days)
                + 0.5 * self._centrality(node_id)
            )

    # --- Removal ---

    def remove(self, node_id: str) -> None:
        with self._lock:
            if node_id not in self._nodes:
                raise GraphIntegrityError(f"Unknown node: {node_id}")
            for other in self._adjacency.pop(node_id):
                self._adjacency[other].pop(node_id, None)
            del self._nodes[node_id]
            self._refresh_weights()
        logger.info(f"Removed node {node_id}")

    # --- Queries ---

    def snapshot(self) -> GraphSnapshot:
        with self._lock:
            nodes = tuple(replace(n, keywords=list(n.keywords), entities=list(n.entities))
                          for n in self._nodes.values())
            return GraphSnapshot(nodes=nodes, connections=self._edges())

    def _edges(self) -> tuple[SemanticConnection, ...]:
        edges = {}
        for neighbours in self._adjacency.values():
            for edge in neighbours.values():
                edges[(edge.from_id, edge.to_id)] = edge
        return tuple(edges.values())

    def node(self, node_id: str) -> GraphNode:
        with self._lock:
            if node_id not in self._nodes:
                raise GraphIntegrityError(f"Unknown node: {node_id}")
            return replace(self._nodes[node_id])

    def centrality(self, node_id: str) -> float:
        """Degree centrality: degree / (nodes - 1), 0 for graphs of one node."""
        with self._lock:
            if node_id not in self._nodes:
                raise GraphIntegrityError(f"Unknown node: {node_id}")
            return self._centrality(node_id)

    def _centrality(self, node_id: str) -> float:
        total = len(self._nodes)
        if total <= 1:
            return 0.0
        return len(self._adjacency[node_id]) / (total - 1)

    def clusters(self, threshold: float | None = None) -> list[GraphCluster]:
        """Connected components over stored edges stronger than threshold (size >= 2)."""
        threshold = self.cluster_threshold if threshold is None else threshold
        snap = self.snapshot()

        strong: dict[str, list[SemanticConnection]] = {}
        for edge in snap.connections:
            if edge.strength > threshold:
                strong.setdefault(edge.from_id, []).append(edge)
                strong.setdefault(edge.to_id, []).append(edge)

        by_id = {n.content_id: n for n in snap.nodes}
        visited: set[str] = set()
        clusters = []
        for start in sorted(strong):
            if start in visited:
                continue
            members, member_edges = [], set()
            queue = deque([start])
            visited.add(start)
            while queue:
                current = queue.popleft()
                members.append(current)
                for edge in strong[current]:
                    member_edges.add(edge)
                    other = edge.other(current)
                    if other not in visited:
                        visited.add(other)
                        queue.append(other)
            if len(members) < 2:
                continue
            strength = sum(e.strength for e in member_edges) / len(member_edges)
            clusters.append(GraphCluster(
                cluster_id=len(clusters),
                node_ids=sorted(members),
                strength=strength,
                label=_cluster_label([by_id[m] for m in members]),
            ))
        return clusters

    def related_nodes(self, from_id: str, max_results: int = 20, max_hops: int = 3) -> list[ContentRelationship]:
        """Breadth-first walk from a node.

        Args:
            from_id: Starting node id.
            max_results: Stop after this many hits.
            max_hops: Do not expand beyond this depth.

        Returns:
            Hits in BFS order; strength is the product of edge strengths on the path.
        """
        with self._lock:
            if from_id not in self._nodes:
                raise GraphIntegrityError(f"Unknown node: {from_id}")
            adjacency = {k: dict(v) for k, v in self._adjacency.items()}

        results: list[ContentRelationship] = []
        visited = {from_id}
        queue = deque([(from_id, 0, 1.0)])
        while queue and len(results) < max_results:
            current, hops, strength = queue.popleft()
            if hops >= max_hops:
                continue
            neighbours = sorted(
                adjacency.get(current, {}).items(),
                key=lambda item: (-item[1].strength, item[0]),
            )
            for other, edge in neighbours:
                if other in visited:
                    continue
                visited.add(other)
                path_strength = strength * edge.strength
                results.append(ContentRelationship(
                    related_id=other,
                    relationship_type="graph_connected",
                    strength=path_strength,
                    hops=hops + 1,
                    evidence=edge.evidence,
                ))
                if len(results) >= max_results:
                    break
                queue.append((other, hops + 1, path_strength))
        return results

    def find_related_content(self, record_id: str, max_results: int = 10) -> list[ContentRelationship]:
        """Direct graph neighbours merged with keyword-similar nodes, strongest first."""
        related = self.related_nodes(record_id, max_results=max_results, max_hops=1)
        seen = {r.related_id for r in related}

        snap = self.snapshot()
        source = snap.node(record_id)
        source_keywords = set(source.keywords)
        for node in snap.nodes:
            if node.content_id == record_id or node.content_id in seen:
                continue
            similarity = jaccard(source_keywords, set(node.keywords))
            if similarity > self.edge_threshold:
                seen.add(node.content_id)
                related.append(ContentRelationship(
                    related_id=node.content_id,
                    relationship_type="semantically_similar",
                    strength=similarity,
                    evidence=f"{round(similarity * 100)}% keyword overlap",
                ))

        related.sort(key=lambda r: (-r.strength, r.related_id))
        return related[:max_results]

    def insight_clusters(self) -> list[InsightCluster]:
        """Topic, entity, temporal, content-type and source groupings of the current nodes."""
        from .cluster import build_insight_clusters

        snap = self.snapshot()
        return build_insight_clusters(list(snap.nodes), self.config, now=self.clock())


def _cluster_label(nodes: list[GraphNode]) -> str:
    counts: dict[str, int] = {}
    for node in nodes:
        for keyword in node.keywords:
            counts[keyword] = counts.get(keyword, 0) + 1
    if counts:
        return max(counts, key=counts.get)
    titles = sorted(n.title for n in nodes if n.title)
    return titles[0] if titles else ""
