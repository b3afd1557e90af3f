"""Pointer target resolution.

Maps a pointer's ``(module, relative path)`` to one concrete file in a
multi-module workspace. Strategies are tried in a fixed order and the
first hit wins:

1. declared module content roots
2. ``<root>/<module>/<path>``
3. ``<root>/<path>`` (single-module workspaces)
4. ``<parent of root>/<module>/<path>`` (sibling projects)
5. conventional sub-directories (``src``, ``app``, ...) around the module,
   at root and sibling level
6. search by file name

Nothing found is not an error: the target may simply not exist yet.
The resolver only performs read-only filesystem probes and keeps no
mutable state, so it can be shared between threads.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Protocol

from incontext.config import COMMON_PROJECT_DIRS, EXCLUDED_DIRECTORIES, ModuleInfo

logger = logging.getLogger(__name__)


class ResolutionStrategy(StrEnum):
    """Which strategy located a target."""

    MODULE_REGISTRY = "module_registry"
    MODULE_PREFIX = "module_prefix"
    ROOT_RELATIVE = "root_relative"
    SIBLING_WORKSPACE = "sibling_workspace"
    COMMON_SUBDIRECTORY = "common_subdirectory"
    FILENAME = "filename"


@dataclass(slots=True, frozen=True)
class Resolution:
    """A resolved target and the strategy that found it."""

    path: Path
    strategy: ResolutionStrategy


class WorkspaceLayout(Protocol):
    """Read-only view of the workspace used for resolution."""

    @property
    def root(self) -> Path: ...

    @property
    def modules(self) -> Sequence[ModuleInfo]: ...

    def is_file(self, path: Path) -> bool: ...

    def find_files_by_name(self, name: str) -> list[Path]: ...


class FileSystemWorkspaceLayout:
    """Workspace layout backed by the local filesystem."""

    def __init__(
        self,
        root: str | Path,
        modules: Sequence[ModuleInfo] = (),
        *,
        excluded_dirs: frozenset[str] = EXCLUDED_DIRECTORIES,
    ) -> None:
        self._root = Path(os.path.abspath(root))
        self._modules = tuple(modules)
        self._excluded_dirs = excluded_dirs

    @property
    def root(self) -> Path:
        return self._root

    @property
    def modules(self) -> Sequence[ModuleInfo]:
        return self._modules

    def is_file(self, path: Path) -> bool:
        try:
            return path.is_file()
        except OSError:
            return False

    def find_files_by_name(self, name: str) -> list[Path]:
        """All files named *name* under the root, in sorted walk order."""
        return [p for p in self._walk_files() if p.name == name]

    def _walk_files(self) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(self._root):
            # Prune in-place so os.walk never descends into excluded dirs
            dirnames[:] = sorted(d for d in dirnames if d not in self._excluded_dirs)
            for filename in sorted(filenames):
                yield Path(dirpath) / filename


class PathResolver:
    """Resolve ``(module, relative path)`` pairs against a workspace layout."""

    def __init__(
        self,
        layout: WorkspaceLayout,
        *,
        common_dirs: Sequence[str] = COMMON_PROJECT_DIRS,
    ) -> None:
        self._layout = layout
        self._common_dirs = tuple(common_dirs)

    @property
    def layout(self) -> WorkspaceLayout:
        return self._layout

    def resolve(self, module_name: str, relative_path: str) -> Path | None:
        """Return the target file, or None when no strategy finds it."""
        resolution = self.resolve_with_strategy(module_name, relative_path)
        return resolution.path if resolution is not None else None

    def resolve_with_strategy(self, module_name: str, relative_path: str) -> Resolution | None:
        """Like :meth:`resolve`, also reporting the winning strategy."""
        rel = relative_path.lstrip("/")
        for strategy, candidate in self._candidates(module_name, rel):
            if self._layout.is_file(candidate):
                logger.debug("Resolved %s/%s via %s: %s", module_name, rel, strategy, candidate)
                return Resolution(path=_normalize(candidate), strategy=strategy)

        found = self._find_by_name(rel)
        if found is not None:
            logger.debug("Resolved %s/%s by file name: %s", module_name, rel, found)
            return Resolution(path=_normalize(found), strategy=ResolutionStrategy.FILENAME)

        logger.debug("Target not found: %s/%s", module_name, rel)
        return None

    def _candidates(
        self, module_name: str, rel: str,
    ) -> Iterator[tuple[ResolutionStrategy, Path]]:
        """Yield probe paths for strategies 1-5, in order."""
        root = self._layout.root
        parent = root.parent

        for module in self._layout.modules:
            if module.name == module_name:
                for content_root in module.content_roots:
                    yield ResolutionStrategy.MODULE_REGISTRY, Path(content_root) / rel

        yield ResolutionStrategy.MODULE_PREFIX, root / module_name / rel
        yield ResolutionStrategy.ROOT_RELATIVE, root / rel
        yield ResolutionStrategy.SIBLING_WORKSPACE, parent / module_name / rel

        for base in (root, parent):
            for common in self._common_dirs:
                # module as parent of the conventional dir, then as its child
                yield ResolutionStrategy.COMMON_SUBDIRECTORY, base / module_name / common / rel
                yield ResolutionStrategy.COMMON_SUBDIRECTORY, base / common / module_name / rel

    def _find_by_name(self, rel: str) -> Path | None:
        file_name = rel.rsplit("/", 1)[-1]
        if not file_name:
            return None
        matches = self._layout.find_files_by_name(file_name)
        if not matches:
            return None
        if len(matches) == 1:
            return matches[0]
        for match in matches:
            if rel in match.as_posix():
                return match
        return matches[0]


def resolve(
    workspace_root: str | Path,
    modules: Sequence[ModuleInfo],
    module_name: str,
    relative_path: str,
) -> Path | None:
    """Resolve against a filesystem workspace in one call."""
    layout = FileSystemWorkspaceLayout(workspace_root, modules)
    return PathResolver(layout).resolve(module_name, relative_path)


def _normalize(path: Path) -> Path:
    return Path(os.path.normpath(path))
