"""NLTK backend: perceptron POS tagging, maxent NE chunking, stop-word language voting."""

import logging

import nltk

from ...errors import NlpUnavailableError
from ...models import EntityType
from ..lexicon import NLTK_LANGUAGE_CODES
from .base import NlpBackend

logger = logging.getLogger(__name__)

# Resource -> data paths, newest NLTK layout first
REQUIRED_DATA = {
    "punkt": ("tokenizers/punkt_tab", "tokenizers/punkt"),
    "averaged_perceptron_tagger": (
        "taggers/averaged_perceptron_tagger_eng",
        "taggers/averaged_perceptron_tagger",
    ),
    "maxent_ne_chunker": ("chunkers/maxent_ne_chunker_tab", "chunkers/maxent_ne_chunker"),
    "words": ("corpora/words",),
    "stopwords": ("corpora/stopwords",),
}

_NE_LABELS = {
    "PERSON": EntityType.PERSON,
    "GPE": EntityType.LOCATION,
    "LOCATION": EntityType.LOCATION,
    "FACILITY": EntityType.LOCATION,
    "GSP": EntityType.LOCATION,
    "ORGANIZATION": EntityType.ORGANIZATION,
}


def _has_data(paths: tuple[str, ...]) -> bool:
    for path in paths:
        try:
            nltk.data.find(path)
            return True
        except LookupError:
            continue
    return False


def missing_data() -> list[str]:
    """Names of required NLTK data packages that are not installed."""
    return [name for name, paths in REQUIRED_DATA.items() if not _has_data(paths)]


class NltkBackend(NlpBackend):
    """Backend built on NLTK's tokenizer, tagger and named-entity chunker."""

    name = "nltk"

    def __init__(self, download_missing: bool = False):
        self.missing = missing_data()
        if self.missing and download_missing:
            for name, paths in REQUIRED_DATA.items():
                if name not in self.missing:
                    continue
                # Newest layout first, fall back to the legacy package name
                for path in paths:
                    try:
                        if nltk.download(path.rsplit("/", 1)[-1], quiet=True):
                            break
                    except Exception as e:
                        logger.warning(f"Failed to download NLTK data {path}: {e}")
            self.missing = missing_data()
        self._stopwords: dict[str, set[str]] | None = None

    def _require(self) -> None:
        if self.missing:
            raise NlpUnavailableError(
                f"NLTK data packages not installed: {', '.join(self.missing)}. "
                "Run nltk.download() for them or set nlp.download_missing: true."
            )

    def _tagged(self, text: str) -> list[tuple[str, str]]:
        self._require()
        return nltk.pos_tag(nltk.word_tokenize(text))

    def detect_language(self, text: str) -> str:
        self._require()
        if self._stopwords is None:
            from nltk.corpus import stopwords
            self._stopwords = {
                lang: set(stopwords.words(lang))
                for lang in stopwords.fileids()
                if lang in NLTK_LANGUAGE_CODES
            }
        tokens = [t.lower() for t in nltk.wordpunct_tokenize(text)]
        best, best_score = "en", 0
        for lang in sorted(self._stopwords):
            score = sum(1 for t in tokens if t in self._stopwords[lang])
            if score > best_score:
                best, best_score = NLTK_LANGUAGE_CODES[lang], score
        return best

    def content_words(self, text: str) -> list[str]:
        return [
            word for word, tag in self._tagged(text)
            if tag.startswith("NN") or tag == "FW"
        ]

    def named_entities(self, text: str) -> list[tuple[str, EntityType, int]]:
        tree = nltk.ne_chunk(self._tagged(text))
        entities = []
        cursor = 0
        for node in tree:
            if hasattr(node, "label"):
                tokens = [tok for tok, _ in node.leaves()]
                start = text.find(tokens[0], cursor)
                offset = start if start >= 0 else cursor
                for tok in tokens:
                    idx = text.find(tok, cursor)
                    if idx >= 0:
                        cursor = idx + len(tok)
                entities.append((" ".join(tokens), _NE_LABELS.get(node.label(), EntityType.OTHER), offset))
            else:
                idx = text.find(node[0], cursor)
                if idx >= 0:
                    cursor = idx + len(node[0])
        return entities
