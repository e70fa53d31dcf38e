"""Fixed word lists used by the extractor and its consumers."""

STOP_WORDS = frozenset({
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "is", "are", "was", "were", "be", "been", "have", "has", "had", "do", "does",
    "did", "will", "would", "could", "should", "may", "might", "must", "can",
    "this", "that", "these", "those", "a", "an",
    # longer function words that would otherwise pass the length filter
    "about", "after", "again", "also", "because", "before", "being", "both",
    "each", "from", "here", "into", "just", "more", "most", "much", "only",
    "other", "over", "same", "some", "such", "than", "their", "them", "then",
    "there", "they", "very", "what", "when", "where", "which", "while", "with",
    "your", "yours", "ours", "mine", "need", "needs", "want", "wants",
})

POSITIVE_WORDS = frozenset({
    "good", "great", "excellent", "amazing", "wonderful", "perfect", "love",
    "like", "happy", "excited",
})

NEGATIVE_WORDS = frozenset({
    "bad", "terrible", "awful", "hate", "dislike", "sad", "angry", "frustrated",
    "disappointed", "worried",
})

ACTION_VERBS = ("call", "email", "send", "buy", "schedule", "book", "complete", "finish", "review")

URGENT_WORDS = ("urgent", "asap", "immediately", "critical", "emergency", "deadline")

# (phrase, priority) checked in order; first match per sentence wins
TASK_PHRASES = (
    ("need to", "medium"),
    ("should", "low"),
    ("must", "high"),
    ("urgent", "high"),
    ("deadline", "high"),
    ("todo", "medium"),
    ("remember", "medium"),
    ("action", "medium"),
)

# Common function words per language, used for dominant-language voting
LANGUAGE_MARKERS = {
    "en": {"the", "and", "is", "are", "of", "to", "in", "that", "it", "with", "for", "on", "this", "about", "need"},
    "es": {"el", "la", "los", "las", "de", "que", "y", "en", "un", "una", "es", "por", "con", "para", "del"},
    "fr": {"le", "la", "les", "de", "des", "et", "est", "un", "une", "que", "dans", "pour", "pas", "sur", "du"},
    "de": {"der", "die", "das", "und", "ist", "nicht", "ein", "eine", "zu", "mit", "den", "von", "auf", "für", "sich"},
    "it": {"il", "lo", "la", "gli", "di", "che", "e", "un", "una", "per", "non", "sono", "con", "del", "della"},
    "pt": {"o", "os", "as", "de", "que", "e", "um", "uma", "para", "com", "não", "por", "do", "da", "em"},
}

# NLTK stopwords corpus file ids mapped to ISO 639-1 codes
NLTK_LANGUAGE_CODES = {
    "arabic": "ar", "danish": "da", "dutch": "nl", "english": "en", "finnish": "fi",
    "french": "fr", "german": "de", "greek": "el", "hungarian": "hu", "indonesian": "id",
    "italian": "it", "norwegian": "no", "portuguese": "pt", "romanian": "ro",
    "russian": "ru", "spanish": "es", "swedish": "sv", "turkish": "tr",
}


def is_stop_word(word: str) -> bool:
    return word.lower() in STOP_WORDS
