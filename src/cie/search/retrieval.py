"""Multi-strategy retrieval, ranking and query suggestions over a SearchIndex."""

import logging
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from ..config import DEFAULT_CONFIG
from ..errors import AnalysisError, GraphIntegrityError, SearchValidationError
from ..extraction.lexicon import is_stop_word
from ..extraction.text import coverage, jaccard, words
from ..models import (
    QueryIntent,
    RankedResult,
    SearchFilters,
    SearchHighlight,
    SearchIndexEntry,
    SearchStrategy,
    SearchSuggestion,
    SuggestionType,
)
from .index import SearchIndex

logger = logging.getLogger(__name__)

QUESTION_WORDS = ("what", "how", "when", "where", "why", "who")
ACTION_WORDS = ("find", "search", "show", "get", "list")
COMPLETIONS = ("how to", "what is", "where is", "when did", "why does")

PREVIEW_CHARS = 200


@dataclass
class _Hit:
    entry: SearchIndexEntry
    relevance: float
    strategy: SearchStrategy
    explanation: str


@dataclass
class QueryAnalysis:
    text: str
    keywords: set[str]
    entities: set[str]
    tokens: list[str]
    intent: QueryIntent


def classify_intent(query: str) -> QueryIntent:
    tokens = query.lower().split()
    if any(w in tokens for w in QUESTION_WORDS):
        return QueryIntent.QUESTION
    if any(w in tokens for w in ACTION_WORDS):
        return QueryIntent.ACTION
    return QueryIntent.SEARCH


class SearchEngine:
    """Runs text, semantic, tag and contextual passes and fuses their results."""

    def __init__(
        self,
        index: SearchIndex,
        extractor=None,
        tagger=None,
        graph=None,
        config: dict[str, Any] | None = None,
    ):
        self.index = index
        self.extractor = extractor
        self.tagger = tagger
        self.graph = graph

        search_cfg = (config or DEFAULT_CONFIG).get("search", {})
        self.exact_limit = search_cfg.get("exact_limit", 50)
        self.semantic_threshold = search_cfg.get("semantic_threshold", 0.3)
        self.contextual_threshold = search_cfg.get("contextual_threshold", 0.4)
        self.suggestion_limit = search_cfg.get("suggestion_limit", 10)
        self.graph_boost = search_cfg.get("graph_boost", 0.1)

        self._history_lock = threading.Lock()
        self._recent: deque[str] = deque(maxlen=search_cfg.get("recent_limit", 20))

    @property
    def recent_queries(self) -> list[str]:
        with self._history_lock:
            return list(self._recent)

    def _remember(self, query: str) -> None:
        with self._history_lock:
            if query in self._recent:
                self._recent.remove(query)
            self._recent.appendleft(query)

    # --- Search ---

    def search(self, query: str, filters: SearchFilters | dict | None = None) -> list[RankedResult]:
        """Search the index.

        Args:
            query: Free-text query. Blank queries return no results.
            filters: SearchFilters or a dict of its fields.

        Returns:
            Results ordered by relevance, then strategy, newest first, then id.

        Raises:
            SearchValidationError: for a non-string query or invalid filters.
        """
        if not isinstance(query, str):
            raise SearchValidationError(f"Query must be a string, got {type(query).__name__}")
        filters = _coerce_filters(filters)
        query = query.strip()
        if not query:
            return []
        self._remember(query)

        candidates = [e for e in self.index.snapshot() if _passes(e, filters)]
        analysis = self._analyze_query(query)

        passes = (self._text_pass, self._semantic_pass, self._tag_pass, self._contextual_pass)
        with ThreadPoolExecutor(max_workers=len(passes)) as pool:
            futures = [pool.submit(p, analysis, candidates) for p in passes]
            pass_hits = [f.result() for f in futures]

        hits: dict[str, _Hit] = {}
        for strategy_hits in pass_hits:
            for hit in strategy_hits:
                hits.setdefault(hit.entry.content_id, hit)
        logger.debug(
            f"Query {query!r}: " + ", ".join(
                f"{s.value}={len(h)}" for s, h in zip(SearchStrategy, pass_hits)
            )
        )

        results = [self._to_result(hit, query) for hit in hits.values()]
        results = [r for r in results if r.relevance >= filters.min_relevance]
        results.sort(key=lambda r: (
            -r.relevance, r.strategy.priority, -r.created_at.timestamp(), r.content_id,
        ))
        logger.info(f"Search {query!r} returned {len(results)} results")
        return results

    def _analyze_query(self, query: str) -> QueryAnalysis:
        keywords: set[str] = set()
        entities: set[str] = set()
        if self.extractor is not None:
            try:
                keywords = set(self.extractor.extract_keywords(query))
                entities = {e.text.lower() for e in self.extractor.extract_entities(query)}
            except AnalysisError as e:
                logger.warning(f"Query analysis unavailable, semantic passes limited: {e}")
        tokens = [w.lower() for w in words(query) if not is_stop_word(w)]
        return QueryAnalysis(
            text=query,
            keywords=keywords,
            entities=entities,
            tokens=tokens,
            intent=classify_intent(query),
        )

    def _text_pass(self, query: QueryAnalysis, entries: list[SearchIndexEntry]) -> list[_Hit]:
        needle = query.text.lower()
        hits = []
        for entry in entries:
            matched = []
            score = 0.0
            if needle in entry.body.lower():
                score += 0.5
                matched.append("body")
            if needle in entry.title.lower():
                score += 0.3
                matched.append("title")
            if needle in entry.ocr_text.lower():
                score += 0.2
                matched.append("OCR text")
            if matched:
                hits.append(_Hit(entry, min(score, 1.0), SearchStrategy.TEXT,
                                 f"Text match in {', '.join(matched)}"))
        hits.sort(key=lambda h: h.entry.created_at, reverse=True)
        return hits[:self.exact_limit]

    def _semantic_pass(self, query: QueryAnalysis, entries: list[SearchIndexEntry]) -> list[_Hit]:
        hits = []
        for entry in entries:
            score = 0.7 * jaccard(query.keywords, entry.keywords) + 0.3 * jaccard(query.entities, entry.entities)
            if score > self.semantic_threshold:
                shared = sorted(query.keywords & entry.keywords)
                hits.append(_Hit(entry, score, SearchStrategy.SEMANTIC,
                                 f"Shares keywords: {', '.join(shared) or 'entities only'}"))
        return hits

    def _tag_pass(self, query: QueryAnalysis, entries: list[SearchIndexEntry]) -> list[_Hit]:
        hits = []
        for entry in entries:
            if not entry.tags or not query.tokens:
                continue
            matched = sorted(
                tag for tag in entry.tags
                if any(tok in tag or tag in tok for tok in query.tokens)
            )
            if matched:
                hits.append(_Hit(entry, len(matched) / len(entry.tags), SearchStrategy.TAG,
                                 f"Tagged {', '.join(matched)}"))
        return hits

    def _contextual_pass(self, query: QueryAnalysis, entries: list[SearchIndexEntry]) -> list[_Hit]:
        hits = []
        for entry in entries:
            score = 0.6 * coverage(query.keywords, entry.keywords) + 0.4 * coverage(query.entities, entry.entities)
            if score > self.contextual_threshold:
                hits.append(_Hit(entry, score, SearchStrategy.CONTEXTUAL,
                                 f"Matches {query.intent.value} intent"))
        return hits

    def _to_result(self, hit: _Hit, query: str) -> RankedResult:
        entry = hit.entry
        relevance = hit.relevance
        explanations = [hit.explanation]
        if self.graph is not None and entry.content_id in self.graph:
            try:
                boost = self.graph_boost * self.graph.centrality(entry.content_id)
            except GraphIntegrityError:
                # removed from the graph since the membership check
                logger.debug(f"No graph boost for {entry.content_id}: node removed")
                boost = 0.0
            if boost > 0:
                relevance = min(relevance + boost, 1.0)
                explanations.append(f"Graph centrality boost +{boost:.2f}")

        text = entry.body or entry.ocr_text
        preview = make_preview(text, query)
        return RankedResult(
            content_id=entry.content_id,
            title=entry.title,
            preview=preview,
            content_type=entry.content_type,
            relevance=relevance,
            strategy=hit.strategy,
            created_at=entry.created_at,
            highlights=make_highlights(preview, query),
            explanations=explanations,
        )

    # --- Suggestions ---

    def suggest(self, partial: str) -> list[SearchSuggestion]:
        """Query suggestions from history, tags, indexed content and completions."""
        if not isinstance(partial, str) or len(partial.strip()) < 2:
            return []
        fragment = partial.strip().lower()

        suggestions = [
            SearchSuggestion(q, SuggestionType.RECENT, 0.9)
            for q in self.recent_queries if fragment in q.lower()
        ]
        if self.tagger is not None:
            suggestions.extend(
                SearchSuggestion(s.tag, SuggestionType.TAG, s.confidence)
                for s in self.tagger.suggest(fragment)
            )
        suggestions.extend(self._content_suggestions(fragment))
        suggestions.extend(
            SearchSuggestion(c, SuggestionType.COMPLETION, 0.5)
            for c in COMPLETIONS if c.startswith(fragment)
        )

        unique = list(dict.fromkeys(suggestions))
        unique.sort(key=lambda s: s.confidence, reverse=True)
        return unique[:self.suggestion_limit]

    def _content_suggestions(self, fragment: str, limit: int = 5) -> list[SearchSuggestion]:
        found: list[SearchSuggestion] = []
        for entry in self.index.snapshot():
            if entry.title and fragment in entry.title.lower():
                found.append(SearchSuggestion(entry.title, SuggestionType.CONTENT, 0.7))
            for keyword in sorted(entry.keywords):
                if fragment in keyword and keyword != fragment:
                    found.append(SearchSuggestion(keyword, SuggestionType.KEYWORD, 0.6))
        return list(dict.fromkeys(found))[:limit]

    def search_by_tags(self, tags: list[str]) -> list[str]:
        """Ids of indexed entries carrying any of the tags."""
        wanted = {t.lower() for t in tags}
        return [e.content_id for e in self.index.snapshot() if e.tags & wanted]


def _coerce_filters(filters: SearchFilters | dict | None) -> SearchFilters:
    if filters is None:
        return SearchFilters()
    if isinstance(filters, SearchFilters):
        return filters
    if isinstance(filters, dict):
        try:
            return SearchFilters(**filters)
        except TypeError as e:
            raise SearchValidationError(f"Unknown filter field: {e}") from e
    raise SearchValidationError(f"Filters must be SearchFilters or dict, got {type(filters).__name__}")


def _passes(entry: SearchIndexEntry, filters: SearchFilters) -> bool:
    if filters.content_types is not None and entry.content_type not in filters.content_types:
        return False
    if filters.date_from and entry.created_at < filters.date_from:
        return False
    if filters.date_to and entry.created_at > filters.date_to:
        return False
    if filters.tags and not entry.tags & set(filters.tags):
        return False
    return True


def make_preview(text: str, query: str) -> str:
    """Up to 200 characters of text centred on the first match of query."""
    if len(text) <= PREVIEW_CHARS:
        return text
    idx = text.lower().find(query.lower())
    if idx < 0:
        return text[:PREVIEW_CHARS]
    start = max(0, idx + len(query) // 2 - PREVIEW_CHARS // 2)
    start = min(start, len(text) - PREVIEW_CHARS)
    return text[start:start + PREVIEW_CHARS]


def make_highlights(text: str, query: str) -> list[SearchHighlight]:
    """Offsets of every query word occurrence in text, case-insensitive."""
    lower = text.lower()
    highlights = []
    for word in dict.fromkeys(query.lower().split()):
        start = lower.find(word)
        while start >= 0:
            highlights.append(SearchHighlight(offset=start, length=len(word)))
            start = lower.find(word, start + len(word))
    highlights.sort(key=lambda h: h.offset)
    return highlights
