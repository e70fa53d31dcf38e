"""Tests for semantic tagging."""

import copy
from datetime import datetime

from cie.config import DEFAULT_CONFIG, DEFAULT_VOCABULARY
from cie.errors import NlpUnavailableError
from cie.models import (
    AnalysisResult,
    Category,
    ContentRecord,
    ContentType,
    EntityType,
    NamedEntity,
    Priority,
    Sentiment,
    TagType,
)
from cie.tagging import SemanticTagger, TagHierarchy, temporal_bucket

NOW = datetime(2024, 5, 15, 12, 0)  # a Wednesday
CONFIG = copy.deepcopy(DEFAULT_CONFIG)
CONFIG["nlp"]["backend"] = "heuristic"


def _record(created_at=NOW, source="Notes", type_=ContentType.TEXT):
    return ContentRecord(
        id="r1", type=type_, title="Budget", body="Project budget for Sarah",
        source=source, created_at=created_at,
    )


def _analysis(**overrides):
    fields = dict(
        language="en",
        keywords=["project", "budget"],
        entities=[NamedEntity("Sarah", EntityType.PERSON, 0.8, 0)],
        sentiment=Sentiment(),
        priority=Priority.HIGH,
        category=Category.BUSINESS,
    )
    fields.update(overrides)
    return AnalysisResult(**fields)


def _tagger(**kwargs):
    return SemanticTagger(CONFIG, DEFAULT_VOCABULARY, clock=lambda: NOW, **kwargs)


class FailingExtractor:
    def analyze(self, text, content_type, ocr_text=None):
        raise NlpUnavailableError("no models")


def test_tag_order_and_relevance():
    tags = _tagger().tag(_record(), _analysis(), now=NOW)
    assert [t.name for t in tags] == [
        "business", "project", "urgent", "sarah", "budget", "text",
        "notes", "today", "work", "finance", "learning",
    ]
    by_name = {t.name: t for t in tags}
    assert by_name["business"].relevance == 0.9
    assert by_name["business"].confidence == 0.95
    assert by_name["sarah"].type is TagType.ENTITY
    assert by_name["work"].type is TagType.HIERARCHY
    assert by_name["work"].metadata == {"parent": "work", "child": "project"}
    assert by_name["today"].type is TagType.TEMPORAL


def test_relevances_sorted_descending():
    tags = _tagger().tag(_record(), _analysis(), now=NOW)
    relevances = [t.relevance for t in tags]
    assert relevances == sorted(relevances, reverse=True)


def test_duplicates_keep_first():
    tags = _tagger().tag(_record(), _analysis(keywords=["budget", "budget"]), now=NOW)
    budget = [t for t in tags if t.name == "budget" and t.type is TagType.KEYWORD]
    assert len(budget) == 1
    assert budget[0].relevance == 0.8


def test_same_name_different_type_kept():
    tags = _tagger().tag(_record(), _analysis(keywords=["work", "project"]), now=NOW)
    assert {t.type for t in tags if t.name == "work"} == {TagType.KEYWORD, TagType.HIERARCHY}


def test_cap_at_fifteen():
    keywords = [f"keyword{i:02d}" for i in range(20)]
    tags = _tagger().tag(_record(), _analysis(keywords=keywords), now=NOW)
    assert len(tags) == 15


def test_retagging_same_day_is_identical():
    tagger = _tagger()
    first = tagger.tag(_record(), _analysis(), now=NOW)
    second = tagger.tag(_record(), _analysis(), now=NOW.replace(hour=18))
    assert [(t.name, t.type, t.relevance) for t in first] == [(t.name, t.type, t.relevance) for t in second]


def test_no_urgent_tag_for_low_priority():
    tags = _tagger().tag(_record(), _analysis(priority=Priority.LOW), now=NOW)
    assert "urgent" not in [t.name for t in tags]


def test_sentiment_tag():
    analysis = _analysis(sentiment=Sentiment(positive=0.8, negative=0.0, neutral=0.2))
    tags = _tagger().tag(_record(), analysis, now=NOW)
    positive = [t for t in tags if t.type is TagType.SENTIMENT]
    assert [(t.name, t.relevance) for t in positive] == [("positive", 0.4)]


def test_temporal_buckets():
    assert temporal_bucket(datetime(2024, 5, 15, 1), NOW) == "today"
    assert temporal_bucket(datetime(2024, 5, 14, 23), NOW) == "yesterday"
    assert temporal_bucket(datetime(2024, 5, 13, 9), NOW) == "this-week"
    assert temporal_bucket(datetime(2024, 5, 2), NOW) == "this-month"
    assert temporal_bucket(datetime(2024, 4, 30), NOW) == "older"


def test_hierarchy_lookup():
    hierarchy = TagHierarchy(DEFAULT_VOCABULARY)
    assert hierarchy.parents_of("budget") == ["finance"]
    assert hierarchy.parents_of("health") == ["personal"]
    assert "flight" in hierarchy.children("travel")


def test_suggest():
    tagger = _tagger()
    suggestions = tagger.suggest("fin")
    assert suggestions[0].tag == "finance"
    assert suggestions[0].confidence == 0.9
    assert suggestions[0].category == "hierarchy"

    book = tagger.suggest("book")
    assert {s.tag for s in book} == {"book", "booking"}
    assert all(s.confidence == 0.8 for s in book)

    photo = tagger.suggest("Photo")
    assert [(s.tag, s.confidence, s.category) for s in photo] == [("visual", 0.7, "content_type")]


def test_suggest_sorted_by_confidence():
    suggestions = _tagger().suggest("e")
    confidences = [s.confidence for s in suggestions]
    assert confidences == sorted(confidences, reverse=True)


def test_fallback_tags():
    tags = _tagger().fallback_tags(_record(type_=ContentType.IMAGE, source="Camera"))
    assert [(t.name, t.type, t.relevance) for t in tags] == [
        ("image", TagType.CONTENT_TYPE, 0.8),
        ("camera", TagType.SOURCE, 0.6),
    ]


def test_tag_record_falls_back_on_analysis_error():
    tagger = _tagger(extractor=FailingExtractor())
    tags = tagger.tag_record(_record())
    assert [t.name for t in tags] == ["text", "notes"]


def test_applied_tag_bookkeeping():
    tagger = _tagger()
    tags = tagger.tag(_record(), _analysis(), now=NOW)
    tagger.apply_tags("r1", tags)
    tagger.apply_tags("r2", tagger.fallback_tags(_record(source="Web")))

    assert tagger.tags_for("r1") == tags
    assert tagger.tags_for("missing") == []
    assert tagger.content_ids_for_tags(["BUDGET"]) == ["r1"]
    assert tagger.content_ids_for_tags(["text"]) == ["r1", "r2"]

    stats = tagger.statistics()
    text_usage = [u for u in stats.most_used if u.tag == "text"]
    assert text_usage[0].count == 2
    assert stats.recent[0] in {"text", "web"}
    assert stats.by_type["keyword"] == 2
    assert stats.total_tags == len(tags) + 1

    tagger.forget("r1")
    assert tagger.content_ids_for_tags(["budget"]) == []
