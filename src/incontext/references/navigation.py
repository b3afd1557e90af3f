"""Data for editor navigation features.

Nothing here touches an editor: these helpers compute what a UI layer
needs to render a reference popup, jump between a pointer and its
target, or copy a pointer for the current selection.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from incontext.config import ModuleInfo
from incontext.references.index import FileLike, Reference, ReferenceIndex
from incontext.references.resolver import PathResolver
from incontext.references.syntax import ParsedPointer, format_pointer


@dataclass(slots=True, frozen=True)
class NavigationTarget:
    """Where to open a file: 1-based line and character offsets.

    ``offset`` is where the caret goes; ``end_offset``, when known, closes
    the span to select.
    """

    path: Path
    line: int
    offset: int
    end_offset: int | None = None


@dataclass(slots=True, frozen=True)
class ReferenceEntry:
    """One row of a "references to this line" listing."""

    label: str
    reference: Reference


def line_start_offset(text: str, line: int) -> int | None:
    """Offset of the first character of 1-based *line*, or None if out of range."""
    if line < 1:
        return None
    offset = 0
    for _ in range(line - 1):
        newline = text.find("\n", offset)
        if newline < 0:
            return None
        offset = newline + 1
    return offset


def line_end_offset(text: str, line: int) -> int:
    """Offset just past the last character of 1-based *line*, before its newline.

    Lines past the end of *text* clamp to ``len(text)``.
    """
    start = line_start_offset(text, max(line, 1))
    if start is None:
        return len(text)
    newline = text.find("\n", start)
    return len(text) if newline < 0 else newline


def pointer_for_selection(
    workspace_root: str | Path,
    modules: Sequence[ModuleInfo],
    file: FileLike,
    start_line: int,
    end_line: int | None = None,
) -> str:
    """Pointer text for lines *start_line*..*end_line* of *file*.

    A file inside a declared module's content root is addressed through
    that module (the most specific root wins). Anything else is addressed
    as ``<workspace dir name>/<path from workspace root>``.

    Raises:
        ValueError: bad line span, or a file outside the workspace and
            every module.
    """
    end = start_line if end_line is None else end_line
    if start_line < 1 or end < start_line:
        raise ValueError(f"Invalid line span {start_line}-{end}")

    path = Path(os.path.abspath(file))
    best: tuple[str, Path, Path] | None = None
    for module in modules:
        for content_root in module.content_roots:
            root = Path(os.path.abspath(content_root))
            try:
                rel = path.relative_to(root)
            except ValueError:
                continue
            if best is None or len(root.parts) > len(best[1].parts):
                best = (module.name, root, rel)
    if best is not None:
        return format_pointer(best[0], best[2].as_posix(), start_line, end)

    root = Path(os.path.abspath(workspace_root))
    try:
        rel = path.relative_to(root)
    except ValueError:
        raise ValueError(f"{path} is outside workspace {root}") from None
    return format_pointer(root.name, rel.as_posix(), start_line, end)


def reference_entries(index: ReferenceIndex, file: FileLike, line: int) -> list[ReferenceEntry]:
    """Listing of references pointing at *line* of *file*.

    One row per (source file, pointer line), ordered by source path and
    line.
    """
    unique: dict[tuple[str, int], Reference] = {}
    for ref in index.find_references_to_location(file, line):
        unique.setdefault((ref.source_file, ref.definition_line), ref)

    entries: list[ReferenceEntry] = []
    for n, (_, ref) in enumerate(sorted(unique.items()), start=1):
        label = f"Reference {n}: {ref.source_name}:L{ref.definition_line}"
        if ref.target_end_line > ref.target_start_line:
            label += f" (points to L{ref.target_start_line}-{ref.target_end_line})"
        entries.append(ReferenceEntry(label=label, reference=ref))
    return entries


def navigation_target(reference: Reference, text: str | None = None) -> NavigationTarget:
    """Where to jump to show the pointer text of *reference*.

    With the source text available the target is the start of the
    pointer's line; otherwise the stored offset is used as is.
    """
    offset = None
    if text is not None and reference.definition_line > 0:
        offset = line_start_offset(text, reference.definition_line)
    if offset is None:
        offset = reference.source_start_offset
    return NavigationTarget(
        path=Path(reference.source_file),
        line=reference.definition_line,
        offset=offset,
        end_offset=reference.source_end_offset,
    )


def pointer_target(
    resolver: PathResolver,
    pointer: ParsedPointer,
    text: str | None = None,
) -> NavigationTarget | None:
    """Where to jump to show the code a pointer describes, or None.

    With the target text available the span covers the pointer's lines,
    ending at the end of its last line or at the end of the text when
    the range runs past it.
    """
    path = resolver.resolve(pointer.module_name, pointer.relative_path)
    if path is None:
        return None
    if text is None:
        return NavigationTarget(path=path, line=pointer.start_line, offset=0)
    offset = line_start_offset(text, pointer.start_line)
    return NavigationTarget(
        path=path,
        line=pointer.start_line,
        offset=len(text) if offset is None else offset,
        end_offset=line_end_offset(text, pointer.end_line),
    )
