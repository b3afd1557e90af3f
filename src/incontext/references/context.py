"""Per-workspace reference context.

One :class:`WorkspaceIndexContext` is built for each open workspace and
handed to whatever needs the index; there is no global registry.

Usage::

    ctx = WorkspaceIndexContext.open("/path/to/repo")
    ctx.build()                              # full scan
    ctx.notify_changed("docs/guide.md")      # after an edit
    refs = ctx.references_at("src/app.py", 42)
"""

from __future__ import annotations

import logging
from pathlib import Path

from incontext.cancellation import CancellationToken
from incontext.config import InContextConfig, load_config
from incontext.errors import ResolutionNotFoundError
from incontext.references.index import FileLike, LineRange, Reference, ReferenceIndex
from incontext.references.maintainer import (
    DiskTextSource,
    FileScanResult,
    IndexingStats,
    IndexMaintainer,
)
from incontext.references.navigation import ReferenceEntry, pointer_for_selection, reference_entries
from incontext.references.resolver import FileSystemWorkspaceLayout, PathResolver, Resolution
from incontext.references.syntax import parse_strict
from incontext.references.worker import IndexWorker
from incontext.utilities.ignore import IgnoreManager

logger = logging.getLogger(__name__)


class WorkspaceIndexContext:
    """Owns the configuration, resolver, index and maintainer of one workspace."""

    def __init__(self, config: InContextConfig) -> None:
        self._config = config
        self._root = Path(config.workspace_root)
        self._layout = FileSystemWorkspaceLayout(self._root, config.modules)
        self._resolver = PathResolver(self._layout)
        self._index = ReferenceIndex()
        self._text_source = DiskTextSource()
        self._maintainer = IndexMaintainer(
            self._root,
            self._index,
            self._resolver,
            text_source=self._text_source,
            ignore_manager=IgnoreManager(self._root) if config.respect_gitignore else None,
        )

    @classmethod
    def open(
        cls,
        workspace_root: str | Path,
        config: InContextConfig | None = None,
    ) -> WorkspaceIndexContext:
        """Create a context, loading configuration from the workspace if needed."""
        return cls(config or load_config(workspace_root))

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def root(self) -> Path:
        return self._root

    @property
    def config(self) -> InContextConfig:
        return self._config

    @property
    def index(self) -> ReferenceIndex:
        return self._index

    @property
    def resolver(self) -> PathResolver:
        return self._resolver

    @property
    def maintainer(self) -> IndexMaintainer:
        return self._maintainer

    @property
    def text_source(self) -> DiskTextSource:
        return self._text_source

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def build(self, token: CancellationToken | None = None) -> IndexingStats:
        """Full scan from an empty index."""
        self._index.clear()
        stats = self._maintainer.reindex_workspace(token)
        logger.info(
            "Indexed %s: %d files, %d references",
            self._root, stats.files_scanned, stats.references_added,
        )
        return stats

    def notify_changed(self, path: FileLike, text: str | None = None) -> FileScanResult | None:
        """Re-index a created or modified file; ignored if not indexable."""
        resolved = self._absolute(path)
        if not self._maintainer.should_process(resolved):
            return None
        return self._maintainer.reindex_file(resolved, text)

    def notify_removed(self, path: FileLike) -> None:
        self._maintainer.on_file_removed(self._absolute(path))

    def create_worker(self) -> IndexWorker:
        """Event channel bound to this workspace's maintainer."""
        return IndexWorker(self._maintainer)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def references_at(self, file: FileLike, line: int) -> list[Reference]:
        return self._index.find_references_to_location(self._absolute(file), line)

    def reference_entries(self, file: FileLike, line: int) -> list[ReferenceEntry]:
        return reference_entries(self._index, self._absolute(file), line)

    def line_ranges(self, file: FileLike) -> list[LineRange]:
        return self._index.get_all_line_ranges_for_file(self._absolute(file))

    def files_with_references(self) -> set[str]:
        return self._index.get_all_files_with_references()

    def resolve_pointer(self, text: str) -> Resolution:
        """Parse and resolve pointer text.

        Raises:
            PointerParseError: malformed pointer.
            ResolutionNotFoundError: no strategy located the target.
        """
        pointer = parse_strict(text)
        resolution = self._resolver.resolve_with_strategy(pointer.module_name, pointer.relative_path)
        if resolution is None:
            raise ResolutionNotFoundError(pointer.module_name, pointer.relative_path)
        return resolution

    def pointer_for_selection(self, file: FileLike, start_line: int, end_line: int | None = None) -> str:
        return pointer_for_selection(
            self._root, self._config.modules, self._absolute(file), start_line, end_line,
        )

    def _absolute(self, path: FileLike) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self._root / p
