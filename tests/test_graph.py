"""Tests for the knowledge graph."""

import threading
from datetime import datetime, timedelta

import pytest

from cie.errors import GraphIntegrityError
from cie.graph import KnowledgeGraph, node_from_record, score_pair
from cie.models import AnalysisResult, ClusterType, ConnectionType, ContentRecord, ContentType

T0 = datetime(2024, 5, 15, 9, 0)


def _record(id_, title="", body="", created_at=T0, source="notes"):
    return ContentRecord(id=id_, type=ContentType.TEXT, title=title, body=body,
                         source=source, created_at=created_at)


def _graph():
    return KnowledgeGraph(clock=lambda: T0)


def _chain():
    """a-b share a title, b-c share a body, a-c share almost nothing."""
    return [
        _record("a", "alpha", "one two three", T0, "s1"),
        _record("b", "alpha", "three four five", T0 + timedelta(days=60), "s2"),
        _record("c", "gamma", "three four five", T0 + timedelta(days=120), "s3"),
    ]


def test_identical_pair_scores_above_threshold():
    a = node_from_record(_record("a", "Weekly sync", "Discuss roadmap items"))
    b = node_from_record(_record("b", "Weekly sync", "Discuss roadmap items"))
    assert score_pair(a, b).total >= 0.3


def test_empty_identical_pair_scores_above_threshold():
    a = node_from_record(_record("a", "", "", T0, "s1"))
    b = node_from_record(_record("b", "", "", T0 + timedelta(days=30), "s2"))
    score = score_pair(a, b)
    assert score.title == 1.0
    assert score.body == 1.0
    assert score.total >= 0.3


def test_shared_words_create_strong_edge():
    body_a = "alpha beta gamma delta epsilon zeta eta theta iota kappa"
    body_b = "alpha beta gamma delta epsilon zeta eta theta lambda mu"
    structure = _graph().insert_batch([
        _record("a", "Project notes", body_a, T0),
        _record("b", "Project notes", body_b, T0 + timedelta(hours=1)),
    ])
    assert len(structure.connections) == 1
    edge = structure.connections[0]
    assert edge.strength > 0.6
    assert edge.connection_type in {ConnectionType.SIMILAR_TOPIC, ConnectionType.RELATED_CONTENT}
    assert "%" in edge.evidence


def test_no_edge_at_or_below_threshold():
    structure = _graph().insert_batch([
        _record("a", "Groceries", "milk eggs bread", T0, "phone"),
        _record("b", "Quarterly report", "revenue grew strongly", T0 + timedelta(days=30), "laptop"),
    ])
    assert structure.connections == []
    assert len(structure.nodes) == 2


def test_pairs_only_within_chunks():
    records = [_record(f"r{i:02d}", "same title", "same body", T0) for i in range(12)]
    graph = _graph()
    structure = graph.insert_batch(records)
    assert len(structure.connections) == 45 + 1
    linked = {frozenset((c.from_id, c.to_id)) for c in structure.connections}
    assert frozenset(("r00", "r11")) not in linked
    assert frozenset(("r10", "r11")) in linked


def test_duplicate_ids_rejected_before_commit():
    graph = _graph()
    with pytest.raises(GraphIntegrityError):
        graph.insert_batch([_record("a"), _record("b"), _record("a")])
    assert len(graph) == 0

    graph.insert_batch([_record("a")])
    with pytest.raises(GraphIntegrityError):
        graph.insert_batch([_record("c"), _record("a")])
    assert "c" not in graph


def test_cancel_abandons_remaining_chunks():
    cancel = threading.Event()
    cancel.set()
    graph = _graph()
    structure = graph.insert_batch([_record(f"r{i}", "t", "b") for i in range(15)], cancel=cancel)
    assert structure.nodes == []
    assert len(graph) == 0


def test_centrality():
    graph = _graph()
    graph.insert_batch([
        _record("a", "budget review", "budget review notes"),
        _record("b", "budget review", "budget review notes"),
        _record("c", "hiking", "mountain trail", T0 - timedelta(days=90), "camera"),
    ])
    assert graph.centrality("a") == pytest.approx(0.5)
    assert graph.centrality("c") == 0.0
    with pytest.raises(GraphIntegrityError):
        graph.centrality("missing")


def test_single_node_centrality_is_zero():
    graph = _graph()
    graph.insert_batch([_record("solo", "t", "b")])
    assert graph.centrality("solo") == 0.0


def test_clusters_use_strong_edges_only():
    graph = _graph()
    graph.insert_batch(_chain() + [
        _record("d", "weekly sync", "roadmap items", T0),
        _record("e", "weekly sync", "roadmap items", T0),
    ])
    clusters = graph.clusters()
    assert [c.node_ids for c in clusters] == [["d", "e"]]
    assert clusters[0].strength > 0.7
    # a lower threshold also joins the chain
    assert ["a", "b", "c"] in [c.node_ids for c in graph.clusters(threshold=0.3)]


def test_related_nodes_breadth_first():
    graph = _graph()
    graph.insert_batch(_chain())

    related = graph.related_nodes("a")
    assert [(r.related_id, r.hops) for r in related] == [("b", 1), ("c", 2)]
    ab = related[0].strength
    assert related[1].strength == pytest.approx(ab * 0.4, abs=0.01)

    assert [r.related_id for r in graph.related_nodes("a", max_hops=1)] == ["b"]
    assert [r.related_id for r in graph.related_nodes("a", max_results=1)] == ["b"]
    with pytest.raises(GraphIntegrityError):
        graph.related_nodes("missing")


def test_node_weights():
    graph = _graph()
    graph.insert_batch([
        _record("a", "budget review", "budget review notes"),
        _record("b", "budget review", "budget review notes"),
        _record("c", "hiking", "mountain trail", T0, "camera"),
    ])
    weights = {n.content_id: n.weight for n in graph.snapshot().nodes}
    assert all(0.0 <= w <= 1.0 for w in weights.values())
    assert weights["a"] > weights["c"]
    assert weights["c"] == pytest.approx(0.5)


def test_remove_drops_edges():
    graph = _graph()
    graph.insert_batch(_chain())
    graph.remove("b")
    assert "b" not in graph
    assert graph.related_nodes("a") == []
    assert all("b" not in (c.from_id, c.to_id) for c in graph.snapshot().connections)
    with pytest.raises(GraphIntegrityError):
        graph.remove("b")


def test_snapshot_is_isolated():
    graph = _graph()
    graph.insert_batch(_chain())
    snap = graph.snapshot()
    graph.insert_batch([_record("z", "new", "node")])
    assert len(snap.nodes) == 3
    assert len(graph.snapshot().nodes) == 4


def test_find_related_content_merges_keyword_matches():
    records = _chain() + [_record("d", "zzz", "unrelated words here", T0 + timedelta(days=200), "s4")]
    analyses = {
        "a": AnalysisResult(language="en", keywords=["budget", "review"]),
        "d": AnalysisResult(language="en", keywords=["budget", "review"]),
    }
    graph = _graph()
    graph.insert_batch(records, analyses=analyses)

    related = graph.find_related_content("a")
    by_id = {r.related_id: r for r in related}
    assert by_id["b"].relationship_type == "graph_connected"
    assert by_id["d"].relationship_type == "semantically_similar"
    assert by_id["d"].strength == 1.0
    assert related[0].related_id == "d"


def test_insight_clusters():
    graph = _graph()
    graph.insert_batch([
        _record("a", "Budget planning", "quarterly budget forecast spreadsheet", T0, "laptop"),
        _record("b", "Budget review", "quarterly budget forecast numbers", T0, "laptop"),
        _record("c", "Hiking trip", "mountain trail hiking boots", T0 + timedelta(days=40), "phone"),
        _record("d", "Hiking gear", "mountain hiking boots backpack", T0 + timedelta(days=41), "phone"),
    ])
    clusters = graph.insight_clusters()
    types = {c.cluster_type for c in clusters}
    assert ClusterType.TEMPORAL in types
    assert ClusterType.SOURCE in types
    assert ClusterType.CONTENT_TYPE in types
    assert all(len(c.items) >= 2 for c in clusters)
    temporal = [c for c in clusters if c.cluster_type is ClusterType.TEMPORAL]
    assert temporal[0].items == ["a", "b"]
