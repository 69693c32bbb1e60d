from typing import Any
from typing import Optional

__all__ = ["NormalizationError", "UnsupportedOptionsEntry", "UnsupportedNodeKind", "SourceParseError"]


class NormalizationError(Exception):
    """Base class for errors raised while normalizing a raw tree"""


class UnsupportedOptionsEntry(NormalizationError):
    def __init__(self, entry_kind: Any, line: int) -> None:
        self.entry_kind = entry_kind
        self.line = line
        super().__init__(f"Unexpected entry in options argument on line {line}: {entry_kind}")


class UnsupportedNodeKind(NormalizationError):
    def __init__(self, kind: Any, line: Optional[int] = None) -> None:
        self.kind = kind
        self.line = line
        where = f" (line {line})" if line is not None else ""
        super().__init__(f"No handler registered for raw node kind {kind!r}{where}")


class SourceParseError(Exception):
    def __init__(self, filename: str, line: Optional[int]) -> None:
        self.filename = filename
        self.line = line

    def __str__(self) -> str:
        if self.line is None:
            return f"{self.filename}: source could not be parsed"
        return f"{self.filename}:{self.line}: syntax error"
