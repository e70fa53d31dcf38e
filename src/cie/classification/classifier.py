"""Keyword-bucket content classification with content-type priors."""

import logging
from typing import Any

from ..config import load_vocabulary
from ..models import AnalysisResult, Category, ContentRecord, ContentType

logger = logging.getLogger(__name__)

# Winner among equal non-zero text counts
TIE_ORDER = ("task", "business", "learning", "personal")


class ContentClassifier:
    """Assigns a coarse Category from vocabulary counts and the content type."""

    def __init__(self, vocabulary: dict[str, Any] | None = None):
        vocabulary = vocabulary or load_vocabulary()
        buckets = vocabulary.get("classifier", {})
        self.buckets: dict[str, list[str]] = {
            name: [w.lower() for w in buckets.get(name, [])] for name in TIE_ORDER
        }

    def counts(self, text: str) -> dict[str, int]:
        """Number of bucket words that occur (as substrings) in text, per bucket."""
        lower = text.lower()
        return {
            name: sum(1 for word in words if word in lower)
            for name, words in self.buckets.items()
        }

    def classify(self, record: ContentRecord, analysis: AnalysisResult | None = None) -> Category:
        """Classify a record. The analysis is accepted for interface symmetry."""
        counts = self.counts(f"{record.title} {record.body}")
        content_type = record.type

        if content_type is ContentType.PDF:
            category = Category.LEARNING if counts["learning"] > 0 else Category.REFERENCE
        elif content_type is ContentType.WEB:
            category = Category.BUSINESS if counts["business"] > counts["personal"] else Category.REFERENCE
        elif content_type is ContentType.IMAGE:
            if record.ocr_text:
                ocr_counts = self.counts(record.ocr_text)
                category = Category.BUSINESS if ocr_counts["business"] > 1 else Category.PERSONAL
            else:
                category = Category.PERSONAL
        elif content_type is ContentType.TEXT:
            category = self._by_counts(counts)
        else:
            category = Category.PERSONAL

        logger.debug(f"Classified {record.id} ({content_type.value}) as {category.value}: {counts}")
        return category

    @staticmethod
    def _by_counts(counts: dict[str, int]) -> Category:
        best = max(counts.values())
        if best == 0:
            return Category.PERSONAL
        for name in TIE_ORDER:
            if counts[name] == best:
                return Category(name)
        return Category.PERSONAL
