from .classifier import ContentClassifier

__all__ = ["ContentClassifier"]
