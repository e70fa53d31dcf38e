"""Exception types raised by the engine."""


class CIEError(Exception):
    """Base class for all engine errors."""


class AnalysisError(CIEError):
    """Text analysis could not be performed."""


class NlpUnavailableError(AnalysisError):
    """The configured NLP backend is missing its models or data packages."""


class SearchValidationError(CIEError, ValueError):
    """A search query or filter set was rejected at the call boundary."""


class GraphIntegrityError(CIEError, RuntimeError):
    """Caller violated the graph contract (duplicate insert, unknown node)."""


class IndexIntegrityError(CIEError, RuntimeError):
    """Caller violated the index contract (duplicate entry, unknown id)."""


class RecordFormatError(CIEError, ValueError):
    """A record file could not be turned into content records."""
