from .extractor import TextFeatureExtractor
from .lexicon import STOP_WORDS, is_stop_word

__all__ = ["TextFeatureExtractor", "STOP_WORDS", "is_stop_word"]
