"""Text feature extraction: language, keywords, entities, sentiment, summary, actions."""

import logging
import re
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Callable

from ..config import DEFAULT_CONFIG
from ..models import (
    ActionItem,
    AnalysisResult,
    ContentType,
    EntityType,
    NamedEntity,
    Priority,
    Sentiment,
    SuggestedTask,
)
from .backends import NlpBackend, get_backend
from .lexicon import (
    ACTION_VERBS,
    NEGATIVE_WORDS,
    POSITIVE_WORDS,
    TASK_PHRASES,
    URGENT_WORDS,
    is_stop_word,
)
from .text import contains_word, split_sentences, words

logger = logging.getLogger(__name__)

PATTERN_ENTITIES = (
    (re.compile(r"[A-Z0-9a-z._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,64}"), EntityType.EMAIL, 0.9),
    (re.compile(r"https?://[^\s]+"), EntityType.URL, 0.95),
    (re.compile(r"\b\d{3}-?\d{3}-?\d{4}\b"), EntityType.PHONE, 0.8),
)


class TextFeatureExtractor:
    """Extracts structured features from raw text.

    The part-of-speech and named-entity steps are delegated to an NLP backend
    (NLTK or the heuristic fallback); everything else is lexicon and rule based
    and therefore deterministic for a given text.
    """

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        backend: NlpBackend | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        config = config or DEFAULT_CONFIG
        self.backend = backend or get_backend(config)
        self.clock = clock
        ex_cfg = config.get("extraction", {})
        self.max_keywords = ex_cfg.get("max_keywords", 10)
        self.summary_max_chars = ex_cfg.get("summary_max_chars", 200)
        self.max_action_items = ex_cfg.get("max_action_items", 3)
        self.max_suggested_tasks = ex_cfg.get("max_suggested_tasks", 5)
        self.entity_confidence = config.get("nlp", {}).get("entity_confidence", 0.8)

    def analyze(
        self,
        text: str,
        content_type: ContentType,
        ocr_text: str | None = None,
    ) -> AnalysisResult:
        """Analyze body text (plus optional OCR text) into an AnalysisResult.

        The category is left unset; the classifier fills it in.

        Raises:
            AnalysisError: if the NLP backend is unavailable for non-empty text.
        """
        text = text or ""
        full_text = "\n".join(p for p in (text, ocr_text) if p)
        sentiment = self.analyze_sentiment(full_text)

        result = AnalysisResult(
            language=self.detect_language(full_text),
            keywords=self.extract_keywords(full_text),
            entities=self.extract_entities(full_text),
            sentiment=sentiment,
            confidence=self.confidence(text, ocr_text, content_type),
            summary=self.summarize(full_text),
            action_items=self.extract_action_items(full_text),
            suggested_tasks=self.suggest_tasks(full_text),
            priority=self.assess_priority(full_text, sentiment),
            analyzed_at=self.clock(),
        )
        logger.debug(
            f"Analyzed {len(full_text)} chars: language={result.language} "
            f"keywords={len(result.keywords)} entities={len(result.entities)}"
        )
        return result

    def detect_language(self, text: str) -> str:
        if not text.strip():
            return "unknown"
        return self.backend.detect_language(text)

    def extract_keywords(self, text: str) -> list[str]:
        """Top content words (> 3 chars, not stop words) by frequency, lowercased."""
        if not text.strip():
            return []
        candidates = [
            w.lower() for w in self.backend.content_words(text)
            if len(w) > 3 and w.isalpha() and not is_stop_word(w)
        ]
        # most_common keeps first-seen order among equal counts
        return [w for w, _ in Counter(candidates).most_common(self.max_keywords)]

    def extract_entities(self, text: str) -> list[NamedEntity]:
        if not text.strip():
            return []
        entities = [
            NamedEntity(text=name, type=etype, confidence=self.entity_confidence, offset=offset)
            for name, etype, offset in self.backend.named_entities(text)
        ]
        for regex, etype, confidence in PATTERN_ENTITIES:
            for match in regex.finditer(text):
                entities.append(NamedEntity(
                    text=match.group(0), type=etype, confidence=confidence, offset=match.start(),
                ))
        entities.sort(key=lambda e: e.offset)
        return entities

    @staticmethod
    def analyze_sentiment(text: str) -> Sentiment:
        """Lexicon sentiment: word-count-normalized positive and negative shares."""
        tokens = [w.lower() for w in words(text)]
        if not tokens:
            return Sentiment()
        positive = sum(1 for w in tokens if w in POSITIVE_WORDS) / len(tokens)
        negative = sum(1 for w in tokens if w in NEGATIVE_WORDS) / len(tokens)
        return Sentiment(
            positive=positive,
            negative=negative,
            neutral=max(1.0 - positive - negative, 0.0),
        )

    def summarize(self, text: str) -> str:
        text = text.strip()
        if len(text) <= self.summary_max_chars:
            return text
        sentences = split_sentences(text, break_on_newline=False)
        summary = ". ".join(sentences[:2])
        return summary if summary.endswith(".") else summary + "."

    def extract_action_items(self, text: str) -> list[ActionItem]:
        items = []
        for sentence in split_sentences(text):
            for verb in ACTION_VERBS:
                if contains_word(sentence, verb):
                    items.append(ActionItem(action=verb, description=sentence))
                    break
            if len(items) >= self.max_action_items:
                break
        return items

    def suggest_tasks(self, text: str) -> list[SuggestedTask]:
        """Sentences phrased as obligations ("need to", "must", ...) become task candidates."""
        now = self.clock()
        tasks = []
        for sentence in split_sentences(text):
            lower = sentence.lower()
            for phrase, priority in TASK_PHRASES:
                if phrase in lower:
                    tasks.append(SuggestedTask(
                        title=sentence[:50],
                        description=sentence,
                        priority=Priority(priority),
                        due_date=_due_from_sentence(lower, now),
                    ))
                    break
            if len(tasks) >= self.max_suggested_tasks:
                break
        return tasks

    @staticmethod
    def assess_priority(text: str, sentiment: Sentiment) -> Priority:
        lower = text.lower()
        if any(word in lower for word in URGENT_WORDS):
            return Priority.HIGH
        if sentiment.negative > 0.3:
            return Priority.MEDIUM
        return Priority.LOW

    @staticmethod
    def confidence(text: str, ocr_text: str | None, content_type: ContentType) -> float:
        confidence = 0.5
        if text:
            confidence += 0.2
        if ocr_text:
            confidence += 0.1
        if ContentType(content_type) is not ContentType.MIXED:
            confidence += 0.1
        return min(confidence, 1.0)


def _due_from_sentence(lower_sentence: str, now: datetime) -> datetime | None:
    if "tomorrow" in lower_sentence:
        return now + timedelta(days=1)
    if "next week" in lower_sentence:
        return now + timedelta(weeks=1)
    return None
