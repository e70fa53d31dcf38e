"""Tests for the search index and multi-strategy retrieval."""

import threading
from datetime import datetime, timedelta

import pytest

from cie.config import DEFAULT_VOCABULARY
from cie.errors import GraphIntegrityError, IndexIntegrityError, NlpUnavailableError, SearchValidationError
from cie.graph import KnowledgeGraph
from cie.models import (
    AnalysisResult,
    ContentRecord,
    ContentType,
    SearchFilters,
    SearchStrategy,
    SemanticTag,
    SuggestionType,
    TagSource,
    TagType,
)
from cie.search import SearchEngine, SearchIndex, classify_intent
from cie.search.retrieval import make_highlights, make_preview
from cie.tagging import SemanticTagger

T0 = datetime(2024, 5, 15, 9, 0)


def _record(id_, title="", body="", created_at=T0, type_=ContentType.TEXT, ocr_text=None, source="notes"):
    return ContentRecord(id=id_, type=type_, title=title, body=body, ocr_text=ocr_text,
                         source=source, created_at=created_at)


def _tags(*names):
    return [SemanticTag(n, TagType.KEYWORD, 0.7, 0.7, TagSource.HEURISTIC) for n in names]


def _index(*items):
    """Build an index from (record, keywords, tags) tuples."""
    index = SearchIndex(clock=lambda: T0)
    index.rebuild_all([])
    for record, keywords, tags in items:
        analysis = AnalysisResult(language="en", keywords=list(keywords)) if keywords else None
        index.upsert(record.id, record, analysis=analysis, tags=tags)
    return index


class StubExtractor:
    def __init__(self, keywords=(), entities=()):
        self.keywords = list(keywords)
        self.entities = list(entities)

    def extract_keywords(self, text):
        return self.keywords

    def extract_entities(self, text):
        return self.entities

    def analyze(self, text, content_type, ocr_text=None):
        return AnalysisResult(language="en", keywords=self.keywords)


class FailingExtractor:
    def extract_keywords(self, text):
        raise NlpUnavailableError("no models")

    extract_entities = extract_keywords

    def analyze(self, text, content_type, ocr_text=None):
        raise NlpUnavailableError("no models")


def test_text_match_in_body():
    index = _index(
        (_record("r1", "Q3", "quarterly budget review"), (), None),
        (_record("r2", "Shopping", "buy groceries"), (), None),
    )
    results = SearchEngine(index).search("budget")
    assert [r.content_id for r in results] == ["r1"]
    result = results[0]
    assert result.strategy is SearchStrategy.TEXT
    assert result.relevance == pytest.approx(0.5)
    assert result.preview == "quarterly budget review"
    assert [(h.offset, h.length) for h in result.highlights] == [(10, 6)]
    assert result.explanations == ["Text match in body"]


def test_text_match_sums_fields():
    index = _index((_record("r1", "Budget", "budget notes", ocr_text="budget scan"), (), None))
    result = SearchEngine(index).search("BUDGET")[0]
    assert result.relevance == pytest.approx(1.0)
    assert result.explanations == ["Text match in body, title, OCR text"]


def test_equal_relevance_prefers_earlier_strategy():
    index = _index(
        (_record("a", "Q3", "quarterly budget review", T0), (), None),
        (_record("b", "Numbers", "figures", T0 + timedelta(days=5)), (), _tags("budget", "other")),
    )
    results = SearchEngine(index).search("budget")
    assert [(r.content_id, r.strategy) for r in results] == [
        ("a", SearchStrategy.TEXT),
        ("b", SearchStrategy.TAG),
    ]
    assert results[1].relevance == pytest.approx(0.5)


def test_equal_relevance_same_strategy_newest_first():
    index = _index(
        (_record("old", "", "budget", T0), (), None),
        (_record("new", "", "budget", T0 + timedelta(days=1)), (), None),
    )
    assert [r.content_id for r in SearchEngine(index).search("budget")] == ["new", "old"]


def test_semantic_pass():
    index = _index((_record("r1", "Plan", "plan the forecast for the budget"), ["budget", "forecast", "plan"], None))
    engine = SearchEngine(index, extractor=StubExtractor(["budget", "forecast"]))
    results = engine.search("budget forecast")
    assert results[0].strategy is SearchStrategy.SEMANTIC
    assert results[0].relevance == pytest.approx(0.7 * 2 / 3)
    assert "budget, forecast" in results[0].explanations[0]


def test_contextual_pass():
    keywords = ["budget", "forecast", "xa", "xb", "xc", "xd", "xe"]
    index = _index((_record("r1", "Numbers", "spreadsheet"), keywords, None))
    engine = SearchEngine(index, extractor=StubExtractor(["budget", "forecast"]))
    results = engine.search("how is the budget forecast")
    assert results[0].strategy is SearchStrategy.CONTEXTUAL
    assert results[0].relevance == pytest.approx(0.6)
    assert results[0].explanations == ["Matches question intent"]


def test_results_are_unique_per_content():
    index = _index((_record("r1", "budget", "budget"), ["budget"], _tags("budget")))
    engine = SearchEngine(index, extractor=StubExtractor(["budget"]))
    results = engine.search("budget")
    assert len(results) == 1
    assert results[0].strategy is SearchStrategy.TEXT


def test_query_analysis_failure_keeps_text_search():
    index = _index((_record("r1", "", "quarterly budget"), ["budget"], None))
    results = SearchEngine(index, extractor=FailingExtractor()).search("budget")
    assert [r.strategy for r in results] == [SearchStrategy.TEXT]


def test_blank_query_returns_nothing():
    engine = SearchEngine(_index((_record("r1", "", "budget"), (), None)))
    assert engine.search("   ") == []
    assert engine.recent_queries == []


def test_invalid_queries_and_filters():
    engine = SearchEngine(_index())
    with pytest.raises(SearchValidationError):
        engine.search(42)
    with pytest.raises(SearchValidationError):
        engine.search("x", {"colour": "red"})
    with pytest.raises(SearchValidationError):
        engine.search("x", {"min_relevance": 1.5})
    with pytest.raises(SearchValidationError):
        engine.search("x", {"content_types": {"video"}})
    with pytest.raises(SearchValidationError):
        engine.search("x", {"date_from": T0, "date_to": T0 - timedelta(days=1)})
    with pytest.raises(SearchValidationError):
        engine.search("x", {"date_from": "yesterday"})
    with pytest.raises(SearchValidationError):
        engine.search("x", "pdf only")
    with pytest.raises(SearchValidationError):
        engine.search("x", {"tags": "urgent"})
    with pytest.raises(SearchValidationError):
        SearchFilters(tags=None)
    assert SearchFilters(tags=("Urgent",)).tags == ["urgent"]


def test_filters_restrict_candidates():
    index = _index(
        (_record("t", "", "budget", T0), (), None),
        (_record("p", "", "budget", T0 - timedelta(days=10), type_=ContentType.PDF), (), None),
        (_record("w", "", "budget", T0 - timedelta(days=20), type_=ContentType.WEB, source="browser"), (), None),
    )
    engine = SearchEngine(index)

    by_type = engine.search("budget", SearchFilters(content_types={"pdf", ContentType.WEB}))
    assert [r.content_id for r in by_type] == ["p", "w"]

    by_date = engine.search("budget", {"date_from": T0 - timedelta(days=15)})
    assert [r.content_id for r in by_date] == ["t", "p"]

    by_tag = engine.search("budget", {"tags": ["Browser"]})
    assert [r.content_id for r in by_tag] == ["w"]

    assert engine.search("budget", {"min_relevance": 0.6}) == []


def test_graph_centrality_boost():
    records = [_record("r1", "Budget sync", "budget sync notes"), _record("r2", "Budget sync", "budget sync notes")]
    graph = KnowledgeGraph()
    graph.insert_batch(records)
    index = _index((records[0], (), None), (records[1], (), None))

    results = SearchEngine(index, graph=graph).search("notes")
    assert results[0].relevance == pytest.approx(0.6)
    assert results[0].explanations[-1] == "Graph centrality boost +0.10"


class VanishingGraph:
    """Reports membership, then finds the node gone when asked for centrality."""

    def __contains__(self, content_id):
        return True

    def centrality(self, content_id):
        raise GraphIntegrityError(f"Unknown node {content_id}")


def test_node_removed_from_graph_mid_search_gets_no_boost():
    index = _index((_record("r1", "Q3", "quarterly budget review"), (), None))
    results = SearchEngine(index, graph=VanishingGraph()).search("budget")
    assert [r.content_id for r in results] == ["r1"]
    assert results[0].relevance == pytest.approx(0.5)
    assert results[0].explanations == ["Text match in body"]


def test_preview_and_highlights():
    text = "a" * 300 + " budget " + "b" * 300
    preview = make_preview(text, "budget")
    assert len(preview) == 200
    assert "budget" in preview
    assert make_preview("short text", "missing") == "short text"
    assert make_preview(text, "missing") == text[:200]

    highlights = make_highlights("Budget review, budget plan", "budget plan")
    assert [(h.offset, h.length) for h in highlights] == [(0, 6), (15, 6), (22, 4)]


def test_classify_intent():
    assert classify_intent("how do I file taxes").value == "question"
    assert classify_intent("find my receipts").value == "action"
    assert classify_intent("quarterly budget").value == "search"


def test_recent_queries_deduplicated():
    engine = SearchEngine(_index())
    for q in ("budget", "travel", "budget"):
        engine.search(q)
    assert engine.recent_queries == ["budget", "travel"]


def test_suggestions():
    index = _index((_record("r1", "Budget review", "numbers"), ["budget"], None))
    tagger = SemanticTagger(vocabulary=DEFAULT_VOCABULARY)
    engine = SearchEngine(index, tagger=tagger)
    engine.search("budget plan")

    suggestions = engine.suggest("bud")
    assert [(s.text, s.type) for s in suggestions] == [
        ("budget plan", SuggestionType.RECENT),
        ("budget", SuggestionType.TAG),
        ("Budget review", SuggestionType.CONTENT),
        ("budget", SuggestionType.KEYWORD),
    ]
    assert engine.suggest("b") == []
    assert [(s.text, s.confidence) for s in engine.suggest("how")] == [("how to", 0.5)]


def test_search_by_tags():
    index = _index(
        (_record("a", "", "x"), (), _tags("budget")),
        (_record("b", "", "y"), (), _tags("travel")),
    )
    assert SearchEngine(index).search_by_tags(["BUDGET", "health"]) == ["a"]


def test_index_builds_lazily_from_source():
    index = SearchIndex(extractor=StubExtractor(["budget"]), record_source=lambda: [_record("r1", "", "budget")])
    assert not index.built
    entries = index.snapshot()
    assert index.built
    assert [e.content_id for e in entries] == ["r1"]
    assert entries[0].keywords == {"budget"}
    assert entries[0].tags == {"text", "notes"}


def test_upsert_during_rebuild_is_kept():
    index = SearchIndex(clock=lambda: T0)
    index.rebuild_all([])
    writer = threading.Thread(target=index.upsert, args=("late", _record("late", "", "late arrival")))

    def records():
        writer.start()
        # the writer waits on the index lock until the rebuild has swapped entries
        writer.join(timeout=0.2)
        yield _record("r1", "", "budget")

    index.rebuild_all(records())
    writer.join()
    assert "r1" in index
    assert "late" in index
    assert len(index) == 2


def test_index_contract():
    index = _index((_record("r1", "", "x"), (), None))
    with pytest.raises(IndexIntegrityError):
        index.upsert("other", _record("r1"))
    with pytest.raises(IndexIntegrityError):
        index.remove("missing")
    with pytest.raises(IndexIntegrityError):
        index.get("missing")

    entry = index.get("r1")
    entry.tags.add("mutated")
    assert "mutated" not in index.get("r1").tags

    index.remove("r1")
    assert "r1" not in index
    assert len(index) == 0


def test_index_without_analysis(caplog):
    index = SearchIndex(extractor=FailingExtractor())
    with caplog.at_level("WARNING"):
        entry = index.upsert("r1", _record("r1", "", "budget"))
    assert entry.keywords == set()
    assert "without keywords" in caplog.text
