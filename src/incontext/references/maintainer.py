"""Keeps the reference index in step with file contents.

Re-scans a file's text for pointers, resolves each pointer's target and
records the edges. Work is best-effort per pointer: one malformed or
unresolvable pointer never stops the rest of the file, and one
unreadable file never stops a workspace scan.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from incontext.cancellation import CancellationToken
from incontext.config import EXCLUDED_DIRECTORIES, SUPPORTED_EXTENSIONS
from incontext.errors import IndexingError
from incontext.references.index import FileLike, ReferenceIndex, file_key
from incontext.references.resolver import PathResolver
from incontext.references.syntax import PointerMatch, find_all, parse
from incontext.utilities.ignore import IgnoreManager

logger = logging.getLogger(__name__)


class TextSource(Protocol):
    """Supplies the current text of a file."""

    def read_text(self, path: Path) -> str: ...


class DiskTextSource:
    """Reads files from disk, preferring in-memory overlays.

    Overlays stand in for unsaved editor buffers: while one is set for a
    path, its text is returned instead of the file contents.
    """

    def __init__(self) -> None:
        self._overlays: dict[str, str] = {}
        self._lock = threading.Lock()

    def set_overlay(self, path: FileLike, text: str) -> None:
        with self._lock:
            self._overlays[file_key(path)] = text

    def clear_overlay(self, path: FileLike) -> None:
        with self._lock:
            self._overlays.pop(file_key(path), None)

    def read_text(self, path: Path) -> str:
        with self._lock:
            overlay = self._overlays.get(file_key(path))
        if overlay is not None:
            return overlay
        return path.read_text(encoding="utf-8", errors="replace")


@dataclass(slots=True, frozen=True)
class UnresolvedPointer:
    """A well-formed pointer whose target could not be located."""

    text: str
    line: int


@dataclass(slots=True)
class FileScanResult:
    """Outcome of re-indexing one file."""

    path: str
    pointers_found: int = 0
    references_added: int = 0
    parse_failures: int = 0
    unresolved: list[UnresolvedPointer] = field(default_factory=list)
    error: IndexingError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class IndexingStats:
    """Aggregate counters for a workspace scan."""

    files_scanned: int = 0
    files_failed: int = 0
    pointers_found: int = 0
    references_added: int = 0
    unresolved: int = 0
    parse_failures: int = 0
    cancelled: bool = False
    elapsed_seconds: float = 0.0

    def record(self, result: FileScanResult) -> None:
        self.files_scanned += 1
        if not result.ok:
            self.files_failed += 1
        self.pointers_found += result.pointers_found
        self.references_added += result.references_added
        self.unresolved += len(result.unresolved)
        self.parse_failures += result.parse_failures


def line_number_at(text: str, offset: int) -> int:
    """1-based line number of the character at *offset*."""
    return text.count("\n", 0, offset) + 1


class IndexMaintainer:
    """Re-scans files and updates the reference index.

    Re-indexing is serialised per file so two scans of the same file
    cannot interleave their remove and add steps; different files are
    processed independently.
    """

    def __init__(
        self,
        root: str | Path,
        index: ReferenceIndex,
        resolver: PathResolver,
        *,
        text_source: TextSource | None = None,
        extensions: frozenset[str] = SUPPORTED_EXTENSIONS,
        excluded_dirs: frozenset[str] = EXCLUDED_DIRECTORIES,
        ignore_manager: IgnoreManager | None = None,
    ) -> None:
        self._root = Path(os.path.abspath(root))
        self._index = index
        self._resolver = resolver
        self._text_source: TextSource = text_source or DiskTextSource()
        self._extensions = extensions
        self._excluded_dirs = excluded_dirs
        self._ignore = ignore_manager
        self._file_locks: dict[str, threading.Lock] = {}
        self._file_locks_guard = threading.Lock()

    @property
    def index(self) -> ReferenceIndex:
        return self._index

    @property
    def root(self) -> Path:
        return self._root

    # ------------------------------------------------------------------
    # Single files
    # ------------------------------------------------------------------

    def reindex_file(self, file: FileLike, text: str | None = None) -> FileScanResult:
        """Replace *file*'s outbound references with a fresh scan.

        When *text* is None the current content is read from the text
        source. If reading fails the previous entries stay in place.
        Relative paths are taken from the workspace root.
        """
        key = self._key(file)
        with self._lock_for(key):
            try:
                if text is None:
                    text = self._read(key)
                return self._rescan(key, text)
            except IndexingError as exc:
                return FileScanResult(path=key, error=exc)
            except Exception as exc:
                logger.exception("Error processing file %s", key)
                error = IndexingError(f"Error processing {key}: {exc}", path=key)
                return FileScanResult(path=key, error=error)

    def on_file_removed(self, file: FileLike) -> None:
        """Forget a deleted file, both as source and as target."""
        key = self._key(file)
        with self._lock_for(key):
            self._index.remove_references_from_file(key)

    def _key(self, file: FileLike) -> str:
        path = Path(file)
        return file_key(path if path.is_absolute() else self._root / path)

    def _read(self, key: str) -> str:
        try:
            return self._text_source.read_text(Path(key))
        except OSError as exc:
            logger.error("Cannot read %s: %s", key, exc)
            raise IndexingError(f"Cannot read {key}: {exc}", path=key) from exc
        except Exception as exc:
            logger.exception("Cannot read %s", key)
            raise IndexingError(f"Cannot read {key}: {exc}", path=key) from exc

    def _rescan(self, key: str, text: str) -> FileScanResult:
        self._index.remove_references_from_source(key)
        result = FileScanResult(path=key)
        # Pointers repeated in one file share a single (target, range) entry
        seen: set[tuple[str, int, int]] = set()
        for match in find_all(text):
            result.pointers_found += 1
            try:
                self._index_match(key, text, match, result, seen)
            except Exception:
                logger.exception("Error indexing pointer %r in %s", match.text, key)
        logger.debug(
            "Indexed %s: %d pointers, %d references",
            key, result.pointers_found, result.references_added,
        )
        return result

    def _index_match(
        self,
        key: str,
        text: str,
        match: PointerMatch,
        result: FileScanResult,
        seen: set[tuple[str, int, int]],
    ) -> None:
        pointer = parse(match.text)
        if pointer is None:
            result.parse_failures += 1
            return

        definition_line = line_number_at(text, match.start)
        target = self._resolver.resolve(pointer.module_name, pointer.relative_path)
        if target is None:
            logger.debug("Target file not found: %s (%s:%d)", match.text, key, definition_line)
            result.unresolved.append(UnresolvedPointer(text=match.text, line=definition_line))
            return

        self._index.add_reference(
            target,
            pointer.start_line,
            pointer.end_line,
            key,
            match.start,
            match.end,
            definition_line,
        )
        entry = (file_key(target), pointer.start_line, pointer.end_line)
        if entry not in seen:
            seen.add(entry)
            result.references_added += 1

    def _lock_for(self, key: str) -> threading.Lock:
        with self._file_locks_guard:
            lock = self._file_locks.get(key)
            if lock is None:
                lock = self._file_locks[key] = threading.Lock()
            return lock

    # ------------------------------------------------------------------
    # Workspace
    # ------------------------------------------------------------------

    def should_process(self, path: FileLike) -> bool:
        """True for supported extensions outside excluded directories."""
        p = Path(self._key(path))
        if p.suffix.lower().lstrip(".") not in self._extensions:
            return False
        try:
            dirs = p.relative_to(self._root).parts[:-1]
        except ValueError:
            dirs = p.parts[:-1]
        return not any(d in self._excluded_dirs for d in dirs)

    def discover_files(self) -> Iterator[Path]:
        """Yield indexable workspace files in sorted walk order."""
        for dirpath, dirnames, filenames in os.walk(self._root):
            # Prune in-place so os.walk never descends into excluded dirs
            dirnames[:] = sorted(d for d in dirnames if d not in self._excluded_dirs)
            for filename in sorted(filenames):
                full_path = Path(dirpath) / filename
                if not self.should_process(full_path):
                    continue
                if self._ignore is not None:
                    rel = full_path.relative_to(self._root).as_posix()
                    if self._ignore.is_ignored(rel):
                        continue
                yield full_path

    def reindex_workspace(self, token: CancellationToken | None = None) -> IndexingStats:
        """Re-index every discovered file.

        The token is checked between files; a cancelled scan stops early
        and leaves the entries of already processed files in place.
        """
        started = time.perf_counter()
        stats = IndexingStats()
        for path in self.discover_files():
            if token is not None and token.is_cancelled:
                stats.cancelled = True
                logger.info("Workspace scan cancelled after %d files", stats.files_scanned)
                break
            stats.record(self.reindex_file(path))
        stats.elapsed_seconds = time.perf_counter() - started
        logger.debug(
            "Workspace scan: %d files, %d references, %d unresolved",
            stats.files_scanned, stats.references_added, stats.unresolved,
        )
        return stats
