"""Gitignore-compatible path filtering using pathspec."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

import pathspec

logger = logging.getLogger(__name__)

# Read in order; later files may re-include with "!pattern"
IGNORE_FILES: tuple[str, ...] = (".gitignore", os.path.join(".incontext", "ignore"))


class IgnoreManager:
    """Filters workspace paths through ignore files at the workspace root.

    Only consulted when the workspace opts in with ``respect_gitignore``;
    excluded directory names are pruned separately by discovery.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(os.path.abspath(root))
        self._spec = pathspec.PathSpec.from_lines("gitignore", [])
        self._load()

    @property
    def root(self) -> Path:
        return self._root

    def _load(self) -> None:
        patterns: list[str] = []
        for name in IGNORE_FILES:
            path = self._root / name
            if not path.is_file():
                continue
            try:
                text = path.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                logger.warning("Cannot read ignore file %s: %s", path, exc)
                continue
            patterns.extend(
                stripped
                for stripped in (line.strip() for line in text.splitlines())
                if stripped and not stripped.startswith("#")
            )
        self._spec = pathspec.PathSpec.from_lines("gitignore", patterns)
        logger.debug("Loaded %d ignore patterns under %s", len(patterns), self._root)

    def is_ignored(self, path: str | Path) -> bool:
        """True if *path* matches an ignore pattern.

        Relative paths are taken relative to the root. Absolute paths
        outside the root are never ignored.
        """
        p = Path(path)
        if p.is_absolute():
            try:
                p = Path(os.path.abspath(p)).relative_to(self._root)
            except ValueError:
                return False
        return self._spec.match_file(p.as_posix())

    def filter_paths(self, paths: Iterable[str | Path]) -> list[str | Path]:
        """Return the paths that are not ignored, in input order."""
        return [p for p in paths if not self.is_ignored(p)]

    def reload(self) -> None:
        """Re-read ignore files from disk."""
        self._load()
