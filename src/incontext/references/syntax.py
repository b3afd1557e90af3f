"""Pointer grammar: scanning, parsing and formatting.

A pointer names a line span in a workspace file::

    @module/path/to/file.py:L10-15
    @module/path/to/file.py:L10

The leading ``@`` is optional when parsing. Scanning is lazy and
yields non-overlapping occurrences in document order.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass

from incontext.errors import PointerParseError

logger = logging.getLogger(__name__)

# Module `[A-Za-z0-9_-]+`, path `[A-Za-z0-9_\-./()]+`; ASCII-only classes.
POINTER_PATTERN = re.compile(
    r"@?([\w-]+/[\w\-./()]+):L(\d+)(?:-(\d+))?",
    re.IGNORECASE | re.ASCII,
)

_LINE_SUFFIX = re.compile(r":L(\d+)(?:-(\d+))?\Z", re.IGNORECASE | re.ASCII)


@dataclass(slots=True, frozen=True)
class ParsedPointer:
    """Structured form of one pointer."""

    module_name: str
    relative_path: str
    start_line: int
    end_line: int

    def __post_init__(self) -> None:
        if self.start_line < 1:
            raise ValueError(f"start_line must be >= 1, got {self.start_line}")
        if self.end_line < self.start_line:
            raise ValueError(
                f"end_line ({self.end_line}) must be >= start_line ({self.start_line})"
            )

    @property
    def is_single_line(self) -> bool:
        return self.start_line == self.end_line

    def format(self) -> str:
        """Canonical pointer text for this pointer."""
        return format_pointer(self.module_name, self.relative_path, self.start_line, self.end_line)


@dataclass(slots=True, frozen=True)
class PointerMatch:
    """One pointer occurrence found in a text."""

    text: str
    start: int  # offset of the first character
    end: int    # offset one past the last character


def find_all(text: str) -> Iterator[PointerMatch]:
    """Lazily yield every pointer occurrence in *text*."""
    for match in POINTER_PATTERN.finditer(text):
        yield PointerMatch(text=match.group(0), start=match.start(), end=match.end())


def parse_strict(text: str) -> ParsedPointer:
    """Parse pointer text, raising :class:`PointerParseError` on failure."""
    body = text[1:] if text.startswith("@") else text

    suffix = _LINE_SUFFIX.search(body)
    if suffix is None:
        raise PointerParseError(text, "missing :L<start>[-<end>] suffix")

    try:
        start_line = int(suffix.group(1))
        end_line = int(suffix.group(2)) if suffix.group(2) is not None else start_line
    except ValueError as exc:
        raise PointerParseError(text, f"invalid line number: {exc}") from exc

    if start_line < 1:
        raise PointerParseError(text, "line numbers are 1-based")
    if end_line < start_line:
        raise PointerParseError(text, "end line precedes start line")

    module_name, _, relative_path = body[: suffix.start()].partition("/")
    return ParsedPointer(
        module_name=module_name,
        relative_path=relative_path,
        start_line=start_line,
        end_line=end_line,
    )


def parse(text: str) -> ParsedPointer | None:
    """Parse pointer text, returning None (and logging) when malformed."""
    try:
        return parse_strict(text)
    except PointerParseError as exc:
        logger.warning("Failed to parse pointer %r: %s", text, exc.reason)
        return None


def format_pointer(
    module_name: str,
    relative_path: str,
    start_line: int,
    end_line: int | None = None,
) -> str:
    """Produce canonical pointer text.

    A single-line span (``end_line`` omitted or equal to ``start_line``)
    is written without the ``-<end>`` part.
    """
    if end_line is None or end_line == start_line:
        return f"@{module_name}/{relative_path}:L{start_line}"
    return f"@{module_name}/{relative_path}:L{start_line}-{end_line}"
