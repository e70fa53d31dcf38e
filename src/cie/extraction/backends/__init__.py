"""NLP backend abstraction for the text feature extractor."""

from .base import NlpBackend, get_backend

__all__ = ["NlpBackend", "get_backend"]
