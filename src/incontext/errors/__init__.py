"""incontext error hierarchy."""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCategory(StrEnum):
    """Category of error for classification and handling."""

    PARSE = "parse"
    RESOLUTION = "resolution"
    INDEXING = "indexing"
    CONFIGURATION = "configuration"
    CANCELLATION = "cancellation"
    INTERNAL = "internal"


class InContextError(Exception):
    """Base error for all incontext exceptions."""

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.category = category
        self.details: dict[str, Any] = details or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r}, category={self.category!r})"


class PointerParseError(InContextError):
    """Pointer text is structurally invalid (missing or bad line numbers)."""

    def __init__(self, text: str, reason: str = "malformed pointer") -> None:
        super().__init__(
            f"Cannot parse pointer {text!r}: {reason}",
            category=ErrorCategory.PARSE,
            details={"text": text, "reason": reason},
        )
        self.text = text
        self.reason = reason


class ResolutionNotFoundError(InContextError):
    """No resolution strategy located the pointer's target file."""

    def __init__(self, module_name: str, relative_path: str) -> None:
        super().__init__(
            f"Target not found: {module_name}/{relative_path}",
            category=ErrorCategory.RESOLUTION,
            details={"module": module_name, "path": relative_path},
        )
        self.module_name = module_name
        self.relative_path = relative_path


class IndexingError(InContextError):
    """A source file could not be indexed."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message, category=ErrorCategory.INDEXING, details={"path": path})
        self.path = path


class ConfigurationError(InContextError):
    """Invalid or missing configuration."""

    def __init__(self, message: str) -> None:
        super().__init__(message, category=ErrorCategory.CONFIGURATION)


class CancellationError(InContextError):
    """Operation was cancelled by user or system."""

    def __init__(self, message: str = "Operation cancelled") -> None:
        super().__init__(message, category=ErrorCategory.CANCELLATION)
