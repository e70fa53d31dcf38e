"""Rule-based NLP backend: regex tokens and capitalized-phrase entities."""

import re

from ...models import EntityType
from ..lexicon import LANGUAGE_MARKERS
from .base import NlpBackend

# Capitalized phrases (1-4 words), likely proper nouns
_PHRASE_RE = re.compile(r"\b([A-Z][a-zA-Z]+(?:\s[A-Z][a-zA-Z]+){0,3})\b")
_LETTERS_RE = re.compile(r"[^\W\d_]+")
_TOKEN_RE = re.compile(r"[A-Za-z][A-Za-z'\-]*")

_NOT_ENTITIES = {
    "The", "This", "That", "These", "Those", "Monday", "Tuesday",
    "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
    "I", "We", "You", "He", "She", "It", "They",
}

_ORG_SUFFIXES = {
    "Inc", "Corp", "Corporation", "Ltd", "LLC", "Company", "Co", "University",
    "Institute", "Bank", "Group", "Foundation", "Agency", "Labs",
}

_PLACE_PREPOSITIONS = {"in", "at", "from", "near"}


class HeuristicBackend(NlpBackend):
    """Dependency-free backend used when NLTK data is not installed."""

    name = "heuristic"

    def detect_language(self, text: str) -> str:
        tokens = _LETTERS_RE.findall(text.lower())
        best, best_score = "en", 0
        for lang, markers in LANGUAGE_MARKERS.items():
            score = sum(1 for t in tokens if t in markers)
            if score > best_score:
                best, best_score = lang, score
        return best

    def content_words(self, text: str) -> list[str]:
        # Without a tagger, drop only -ly adverbs
        return [t for t in _TOKEN_RE.findall(text) if not t.lower().endswith("ly")]

    def named_entities(self, text: str) -> list[tuple[str, EntityType, int]]:
        entities = []
        for match in _PHRASE_RE.finditer(text):
            name = match.group(1)
            offset = match.start(1)
            parts = name.split()

            # A capital at sentence start says nothing; drop that word
            drop = 1 if _at_sentence_start(text, offset) else 0
            while drop < len(parts) and parts[drop] in _NOT_ENTITIES:
                drop += 1
            if drop:
                parts = parts[drop:]
                if not parts:
                    continue
                offset = text.index(parts[0], offset)
                name = " ".join(parts)

            entities.append((name, _classify(text, offset, parts), offset))
        return entities


def _at_sentence_start(text: str, offset: int) -> bool:
    prefix = text[:offset].rstrip(" \t")
    return not prefix or prefix[-1] in ".!?\n:"


def _classify(text: str, offset: int, parts: list[str]) -> EntityType:
    if parts[-1].rstrip(".") in _ORG_SUFFIXES:
        return EntityType.ORGANIZATION
    preceding = text[:offset].split()
    if preceding and preceding[-1].lower() in _PLACE_PREPOSITIONS:
        return EntityType.LOCATION
    if len(parts) <= 3:
        return EntityType.PERSON
    return EntityType.OTHER
