"""Inbound reference index.

Maps each target file to the line ranges pointed at inside it, and each
range to the references (source locations) pointing there. Answers
"what points at line N of this file" by scanning the file's ranges.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

FileLike = str | os.PathLike[str]


def file_key(path: FileLike) -> str:
    """Normalise a file identity to the POSIX path string used as index key."""
    return Path(os.path.normpath(os.fspath(path))).as_posix()


@dataclass(slots=True, frozen=True)
class LineRange:
    """Inclusive ``[start_line, end_line]`` span of a target file."""

    start_line: int
    end_line: int

    def __post_init__(self) -> None:
        if self.start_line < 1 or self.end_line < self.start_line:
            raise ValueError(f"Invalid line range {self.start_line}-{self.end_line}")

    def contains(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line


@dataclass(slots=True, frozen=True)
class Reference:
    """One edge from a pointer in a source file to a target line range."""

    source_file: str
    source_start_offset: int
    source_end_offset: int
    target_start_line: int
    target_end_line: int
    definition_line: int  # 1-based line of the pointer in the source

    @property
    def source_name(self) -> str:
        return Path(self.source_file).name


@dataclass
class ReferenceIndex:
    """Thread-safe store of inbound references per target file.

    Invariants: within one range list at most one reference per source
    file; no empty range lists; no target without ranges. Every public
    method runs under one lock and hands out copies.
    """

    # target path -> line range -> references pointing into it
    _targets: dict[str, dict[LineRange, list[Reference]]] = field(default_factory=dict)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def add_reference(
        self,
        target_file: FileLike,
        target_start_line: int,
        target_end_line: int,
        source_file: FileLike,
        source_start_offset: int,
        source_end_offset: int,
        definition_line: int,
    ) -> Reference:
        """Insert a reference, replacing any entry with the same key.

        The key is the source file plus the target range; offsets and
        definition line are payload, so a re-scan with shifted text
        replaces the stored location instead of being dropped.
        """
        line_range = LineRange(target_start_line, target_end_line)
        reference = Reference(
            source_file=file_key(source_file),
            source_start_offset=source_start_offset,
            source_end_offset=source_end_offset,
            target_start_line=target_start_line,
            target_end_line=target_end_line,
            definition_line=definition_line,
        )
        target = file_key(target_file)

        with self._lock:
            refs = self._targets.setdefault(target, {}).setdefault(line_range, [])
            for i, existing in enumerate(refs):
                if existing.source_file == reference.source_file:
                    refs[i] = reference
                    logger.debug(
                        "Replaced reference %s -> %s:%d-%d",
                        reference.source_file, target, target_start_line, target_end_line,
                    )
                    break
            else:
                refs.append(reference)
                logger.debug(
                    "Added reference %s -> %s:%d-%d",
                    reference.source_file, target, target_start_line, target_end_line,
                )
        return reference

    def find_references_to_location(self, file: FileLike, line_number: int) -> list[Reference]:
        """All references whose range on *file* contains *line_number*."""
        with self._lock:
            ranges = self._targets.get(file_key(file))
            if not ranges:
                return []
            result: list[Reference] = []
            for line_range, refs in ranges.items():
                if line_range.contains(line_number):
                    result.extend(refs)
            return result

    def get_all_line_ranges_for_file(self, file: FileLike) -> list[LineRange]:
        """Distinct ranges of *file* with at least one reference."""
        with self._lock:
            return list(self._targets.get(file_key(file), {}))

    def get_all_files_with_references(self) -> set[str]:
        """Target files with at least one reference."""
        with self._lock:
            return set(self._targets)

    def references_from_source(self, file: FileLike) -> list[Reference]:
        """Every stored reference whose pointer lives in *file*."""
        source = file_key(file)
        with self._lock:
            return [
                ref
                for ranges in self._targets.values()
                for refs in ranges.values()
                for ref in refs
                if ref.source_file == source
            ]

    @property
    def reference_count(self) -> int:
        with self._lock:
            return sum(len(refs) for ranges in self._targets.values() for refs in ranges.values())

    def remove_references_from_source(self, file: FileLike) -> int:
        """Drop references whose source is *file*; returns how many.

        References pointing *into* the file are kept.
        """
        source = file_key(file)
        removed = 0
        with self._lock:
            for target in list(self._targets):
                ranges = self._targets[target]
                for line_range in list(ranges):
                    refs = ranges[line_range]
                    kept = [r for r in refs if r.source_file != source]
                    removed += len(refs) - len(kept)
                    if kept:
                        ranges[line_range] = kept
                    else:
                        del ranges[line_range]
                if not ranges:
                    del self._targets[target]
        if removed:
            logger.debug("Removed %d references from source %s", removed, source)
        return removed

    def remove_references_from_file(self, file: FileLike) -> int:
        """Forget *file* on both sides: its outbound references and every
        reference targeting it. Used when the file itself goes away.
        """
        key = file_key(file)
        with self._lock:
            removed = self.remove_references_from_source(key)
            inbound = self._targets.pop(key, None)
            if inbound:
                removed += sum(len(refs) for refs in inbound.values())
        logger.debug("Removed file %s from reference index", key)
        return removed

    def clear(self) -> None:
        """Empty the index."""
        with self._lock:
            self._targets.clear()
        logger.debug("Cleared reference index")
