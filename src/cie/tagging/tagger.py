"""Semantic tag generation, suggestion and bookkeeping."""

import logging
import threading
from collections import Counter, deque
from datetime import datetime, timedelta
from typing import Any, Callable

from ..config import DEFAULT_CONFIG
from ..errors import AnalysisError
from ..models import (
    AnalysisResult,
    ContentRecord,
    Priority,
    SemanticTag,
    TagSource,
    TagStatistics,
    TagSuggestion,
    TagType,
    TagUsage,
)
from .hierarchy import TagHierarchy

logger = logging.getLogger(__name__)

# (query fragments, suggested tag, related tags)
CONTENT_TYPE_HINTS = (
    (("image", "photo"), "visual", ["image", "photo", "graphic"]),
    (("pdf", "document"), "document", ["pdf", "document", "file"]),
    (("web", "link", "url"), "web", ["web", "link", "url"]),
)

RECENT_TAGS_LIMIT = 20


def temporal_bucket(created_at: datetime, now: datetime) -> str:
    """Bucket a timestamp relative to now: today, yesterday, this-week, this-month or older."""
    created, today = created_at.date(), now.date()
    if created == today:
        return "today"
    if created == today - timedelta(days=1):
        return "yesterday"
    if created.isocalendar()[:2] == today.isocalendar()[:2]:
        return "this-week"
    if (created.year, created.month) == (today.year, today.month):
        return "this-month"
    return "older"


class SemanticTagger:
    """Turns a record and its analysis into a ranked list of typed tags."""

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        vocabulary: dict[str, Any] | None = None,
        extractor=None,
        classifier=None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config or DEFAULT_CONFIG
        self.max_tags = self.config.get("tagging", {}).get("max_tags", 15)
        self.hierarchy = TagHierarchy(vocabulary)
        self.extractor = extractor
        self.classifier = classifier
        self.clock = clock

        self._lock = threading.Lock()
        self._applied: dict[str, list[SemanticTag]] = {}
        self._usage: dict[tuple[str, TagType], TagUsage] = {}
        self._recent: deque[str] = deque(maxlen=RECENT_TAGS_LIMIT)

    def tag(
        self,
        record: ContentRecord,
        analysis: AnalysisResult,
        now: datetime | None = None,
    ) -> list[SemanticTag]:
        """Generate tags for a record.

        Tags are deduplicated by (name, type) keeping the first occurrence,
        then sorted by relevance (stable) and capped.
        """
        now = now or self.clock()
        tags: list[SemanticTag] = []

        category = analysis.category
        if category is None and self.classifier is not None:
            category = self.classifier.classify(record, analysis)
        if category is not None:
            tags.append(SemanticTag(
                name=category.value, type=TagType.CATEGORY, relevance=0.9, confidence=0.95,
                source=TagSource.DERIVED, metadata={"category": category.value},
            ))

        for rank, keyword in enumerate(analysis.keywords):
            tags.append(SemanticTag(
                name=keyword, type=TagType.KEYWORD, relevance=max(0.8 - 0.1 * rank, 0.0),
                confidence=0.7, source=TagSource.HEURISTIC, metadata={"rank": rank},
            ))

        for entity in analysis.entities:
            tags.append(SemanticTag(
                name=entity.text.lower(), type=TagType.ENTITY, relevance=0.75,
                confidence=entity.confidence, source=TagSource.HEURISTIC,
                metadata={"entity": entity.text, "entity_type": entity.type.value},
            ))

        tags.extend(self._context_tags(record, analysis, now))
        tags.extend(self._hierarchy_tags(tags))

        if analysis.sentiment.positive > 0.7:
            tags.append(SemanticTag(
                name="positive", type=TagType.SENTIMENT, relevance=0.4,
                confidence=analysis.sentiment.positive, source=TagSource.DERIVED,
            ))
        elif analysis.sentiment.negative > 0.7:
            tags.append(SemanticTag(
                name="negative", type=TagType.SENTIMENT, relevance=0.4,
                confidence=analysis.sentiment.negative, source=TagSource.DERIVED,
            ))

        unique = list(dict.fromkeys(tags))
        unique.sort(key=lambda t: t.relevance, reverse=True)
        result = unique[:self.max_tags]
        logger.info(f"Generated {len(result)} tags for {record.id}")
        return result

    def _context_tags(self, record: ContentRecord, analysis: AnalysisResult, now: datetime) -> list[SemanticTag]:
        bucket = temporal_bucket(record.created_at, now)
        tags = [
            self._source_tag(record),
            SemanticTag(
                name=record.type.value, type=TagType.CONTENT_TYPE, relevance=0.7,
                confidence=1.0, source=TagSource.SYSTEM,
                metadata={"content_type": record.type.value},
            ),
            SemanticTag(
                name=bucket, type=TagType.TEMPORAL, relevance=0.6, confidence=1.0,
                source=TagSource.SYSTEM, metadata={"timeframe": bucket},
            ),
        ]
        if analysis.priority is Priority.HIGH:
            tags.append(SemanticTag(
                name="urgent", type=TagType.PRIORITY, relevance=0.8, confidence=0.8,
                source=TagSource.DERIVED, metadata={"priority": Priority.HIGH.value},
            ))
        return tags

    def _hierarchy_tags(self, tags: list[SemanticTag]) -> list[SemanticTag]:
        inferred = []
        for tag in tags:
            for parent in self.hierarchy.parents_of(tag.name):
                inferred.append(SemanticTag(
                    name=parent, type=TagType.HIERARCHY, relevance=0.5, confidence=0.6,
                    source=TagSource.SYSTEM, metadata={"parent": parent, "child": tag.name},
                ))
        return inferred

    @staticmethod
    def _source_tag(record: ContentRecord, relevance: float = 0.6) -> SemanticTag:
        return SemanticTag(
            name=record.source.lower(), type=TagType.SOURCE, relevance=relevance,
            confidence=1.0, source=TagSource.SYSTEM, metadata={"source": record.source},
        )

    def fallback_tags(self, record: ContentRecord) -> list[SemanticTag]:
        """Minimal tags that need no analysis: content type and source."""
        return [
            SemanticTag(
                name=record.type.value, type=TagType.CONTENT_TYPE, relevance=0.8,
                confidence=1.0, source=TagSource.SYSTEM,
                metadata={"content_type": record.type.value},
            ),
            self._source_tag(record),
        ]

    def tag_record(self, record: ContentRecord, now: datetime | None = None) -> list[SemanticTag]:
        """Analyze and tag a record, falling back to minimal tags when analysis fails."""
        if self.extractor is None:
            raise ValueError("tag_record requires an extractor")
        try:
            analysis = self.extractor.analyze(record.body, record.type, record.ocr_text)
        except AnalysisError as e:
            logger.warning(f"Analysis failed for {record.id}, using fallback tags: {e}")
            return self.fallback_tags(record)
        analysis.content_id = record.id
        if self.classifier is not None:
            analysis.category = self.classifier.classify(record, analysis)
        return self.tag(record, analysis, now=now)

    def suggest(self, partial_query: str) -> list[TagSuggestion]:
        """Suggest tags whose hierarchy names or content-type hints match a query fragment."""
        query = partial_query.strip().lower()
        if not query:
            return []

        parents, children = self.hierarchy.matching(query)
        suggestions = [
            TagSuggestion(tag=p, confidence=0.9, category="hierarchy", related_tags=self.hierarchy.children(p))
            for p in parents
        ]
        suggestions.extend(
            TagSuggestion(tag=child, confidence=0.8, category="keyword", related_tags=[parent])
            for child, parent in children
        )
        for fragments, tag, related in CONTENT_TYPE_HINTS:
            if any(f in query for f in fragments):
                suggestions.append(TagSuggestion(
                    tag=tag, confidence=0.7, category="content_type", related_tags=list(related),
                ))

        suggestions.sort(key=lambda s: s.confidence, reverse=True)
        return suggestions

    # --- Applied tag bookkeeping ---

    def apply_tags(self, content_id: str, tags: list[SemanticTag]) -> None:
        """Attach tags to a content id, replacing any previously applied set."""
        now = self.clock()
        with self._lock:
            self._applied[content_id] = list(tags)
            for tag in tags:
                key = (tag.name, tag.type)
                usage = self._usage.get(key)
                if usage is None:
                    self._usage[key] = TagUsage(tag=tag.name, count=1, last_used=now)
                else:
                    usage.count += 1
                    usage.last_used = now
                if tag.name in self._recent:
                    self._recent.remove(tag.name)
                self._recent.appendleft(tag.name)
        logger.info(f"Applied {len(tags)} tags to content {content_id}")

    def forget(self, content_id: str) -> None:
        """Drop the tags applied to a content id; usage counts are kept."""
        with self._lock:
            self._applied.pop(content_id, None)

    def tags_for(self, content_id: str) -> list[SemanticTag]:
        with self._lock:
            return list(self._applied.get(content_id, []))

    def content_ids_for_tags(self, names: list[str]) -> list[str]:
        """Content ids carrying any of the named tags, in application order."""
        wanted = {n.lower() for n in names}
        with self._lock:
            return [
                content_id for content_id, tags in self._applied.items()
                if any(t.name in wanted for t in tags)
            ]

    def statistics(self, limit: int = 10) -> TagStatistics:
        with self._lock:
            usages = sorted(self._usage.values(), key=lambda u: (-u.count, u.tag))
            by_type = Counter(
                tag.type.value for tags in self._applied.values() for tag in tags
            )
            return TagStatistics(
                total_tags=len(self._usage),
                most_used=[TagUsage(u.tag, u.count, u.last_used) for u in usages[:limit]],
                recent=list(self._recent),
                by_type=dict(by_type),
            )
