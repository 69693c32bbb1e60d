from ._version import version as __version__

__all__ = [
    "__version__",
    "Normalizer",
    "NormalizationError",
    "UnsupportedNodeKind",
    "UnsupportedOptionsEntry",
    "SourceParseError",
    "TranslationCall",
    "translation_calls",
    "scan_source",
    "scan_paths",
]

from .errors import NormalizationError, SourceParseError, UnsupportedNodeKind, UnsupportedOptionsEntry
from .nodes import translation_calls, TranslationCall
from .normalize import Normalizer
from .scanner import scan_paths, scan_source
