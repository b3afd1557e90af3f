"""Code pointers: syntax, resolution, and the inbound reference index."""

from incontext.references.context import WorkspaceIndexContext
from incontext.references.index import LineRange, Reference, ReferenceIndex, file_key
from incontext.references.maintainer import (
    DiskTextSource,
    FileScanResult,
    IndexingStats,
    IndexMaintainer,
    TextSource,
    UnresolvedPointer,
)
from incontext.references.navigation import (
    NavigationTarget,
    ReferenceEntry,
    navigation_target,
    pointer_for_selection,
    pointer_target,
    reference_entries,
)
from incontext.references.resolver import (
    FileSystemWorkspaceLayout,
    PathResolver,
    Resolution,
    ResolutionStrategy,
    WorkspaceLayout,
    resolve,
)
from incontext.references.syntax import (
    POINTER_PATTERN,
    ParsedPointer,
    PointerMatch,
    find_all,
    format_pointer,
    parse,
    parse_strict,
)
from incontext.references.worker import FileEvent, FileEventKind, IndexWorker

__all__ = [
    "POINTER_PATTERN",
    "DiskTextSource",
    "FileEvent",
    "FileEventKind",
    "FileScanResult",
    "FileSystemWorkspaceLayout",
    "IndexMaintainer",
    "IndexWorker",
    "IndexingStats",
    "LineRange",
    "NavigationTarget",
    "ParsedPointer",
    "PathResolver",
    "PointerMatch",
    "Reference",
    "ReferenceEntry",
    "ReferenceIndex",
    "Resolution",
    "ResolutionStrategy",
    "TextSource",
    "UnresolvedPointer",
    "WorkspaceIndexContext",
    "WorkspaceLayout",
    "file_key",
    "find_all",
    "format_pointer",
    "navigation_target",
    "parse",
    "parse_strict",
    "pointer_for_selection",
    "pointer_target",
    "reference_entries",
    "resolve",
]
