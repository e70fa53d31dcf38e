"""Abstract base class for NLP backends and factory function."""

import logging
from abc import ABC, abstractmethod
from typing import Any

from ...models import EntityType

logger = logging.getLogger(__name__)


class NlpBackend(ABC):
    """Common interface for the language, part-of-speech and NER providers."""

    name: str = "base"

    @abstractmethod
    def detect_language(self, text: str) -> str:
        """Return an ISO 639-1 code for the dominant language of non-empty text."""

    @abstractmethod
    def content_words(self, text: str) -> list[str]:
        """Return nouns and other content-word tokens, in document order, case preserved."""

    @abstractmethod
    def named_entities(self, text: str) -> list[tuple[str, EntityType, int]]:
        """Return (entity text, type, character offset) triples in document order."""


def get_backend(config: dict[str, Any]) -> NlpBackend:
    """Factory: return the NLP backend named in config."""
    nlp_cfg = config.get("nlp", {})
    backend = nlp_cfg.get("backend", "auto")
    download = nlp_cfg.get("download_missing", False)

    if backend == "heuristic":
        from .heuristic import HeuristicBackend
        return HeuristicBackend()
    elif backend == "nltk":
        from .nltk_backend import NltkBackend
        return NltkBackend(download_missing=download)
    elif backend == "auto":
        from .heuristic import HeuristicBackend
        from .nltk_backend import NltkBackend
        nltk_backend = NltkBackend(download_missing=download)
        if nltk_backend.missing:
            logger.warning(
                f"NLTK data not installed ({', '.join(nltk_backend.missing)}); "
                "using heuristic NLP backend"
            )
            return HeuristicBackend()
        return nltk_backend
    else:
        raise ValueError(f"Unknown nlp backend: {backend}")
