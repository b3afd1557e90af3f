"""Global test fixtures for incontext."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from incontext.config import InContextConfig
from incontext.utilities import logger

MakeFile = Callable[..., Path]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment settings out of config-sensitive tests."""
    monkeypatch.delenv("INCONTEXT_DEBUG", raising=False)
    monkeypatch.delenv("INCONTEXT_JSON_LOGS", raising=False)


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """Undo handlers installed by setup_logging (e.g. from CLI invocations)."""
    root = logging.getLogger()
    level = root.level
    yield
    if logger._handler is not None:
        root.removeHandler(logger._handler)
        logger._handler = None
    root.setLevel(level)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """An empty workspace root whose parent directory is private to the test."""
    root = (tmp_path / "ws").resolve()
    root.mkdir()
    return root


@pytest.fixture
def make_file(workspace: Path) -> MakeFile:
    """Create a file under the workspace (or any absolute path)."""

    def _make(rel: str | Path, text: str = "", *, lines: int = 0) -> Path:
        path = Path(rel) if Path(rel).is_absolute() else workspace / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if lines:
            text = text + "".join(f"line {n}\n" for n in range(1, lines + 1))
        path.write_text(text, encoding="utf-8")
        return path

    return _make


@pytest.fixture
def config(workspace: Path) -> InContextConfig:
    return InContextConfig(workspace_root=str(workspace))