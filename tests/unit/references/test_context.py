"""Tests for WorkspaceIndexContext."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from incontext.cancellation import CancellationTokenSource
from incontext.config import InContextConfig
from incontext.errors import PointerParseError, ResolutionNotFoundError
from incontext.references.context import WorkspaceIndexContext
from incontext.references.index import LineRange, file_key
from incontext.references.resolver import ResolutionStrategy
from incontext.references.worker import IndexWorker


@pytest.fixture
def populated(workspace: Path, make_file: Callable[..., Path]) -> Path:
    make_file(
        ".incontext/config.yaml",
        "modules:\n  billing: services/billing\n",
    )
    make_file("services/billing/invoice.py", lines=30)
    make_file("src/app.py", lines=30)
    make_file("docs/guide.md", "Intro\n@billing/invoice.py:L5-8\n@ws/src/app.py:L12\n")
    return workspace


class TestOpenAndBuild:
    def test_open_loads_modules(self, populated: Path) -> None:
        ctx = WorkspaceIndexContext.open(populated)
        assert ctx.root == populated
        assert [m.name for m in ctx.config.modules] == ["billing"]

    def test_build_indexes_workspace(self, populated: Path) -> None:
        ctx = WorkspaceIndexContext.open(populated)
        stats = ctx.build()
        assert stats.references_added == 2
        assert ctx.files_with_references() == {
            file_key(populated / "services/billing/invoice.py"),
            file_key(populated / "src/app.py"),
        }

    def test_relative_query_paths(self, populated: Path) -> None:
        ctx = WorkspaceIndexContext.open(populated)
        ctx.build()
        [ref] = ctx.references_at("services/billing/invoice.py", 6)
        assert ref.definition_line == 2
        assert ctx.line_ranges("src/app.py") == [LineRange(12, 12)]
        [entry] = ctx.reference_entries("src/app.py", 12)
        assert entry.label == "Reference 1: guide.md:L3"

    def test_build_starts_from_empty_index(self, populated: Path) -> None:
        ctx = WorkspaceIndexContext.open(populated)
        ctx.index.add_reference(populated / "src/app.py", 1, 1, populated / "stale.md", 0, 1, 1)
        ctx.build()
        assert ctx.references_at("src/app.py", 1) == []

    def test_build_cancelled(self, populated: Path) -> None:
        ctx = WorkspaceIndexContext.open(populated)
        cts = CancellationTokenSource()
        cts.cancel()
        stats = ctx.build(cts.token)
        assert stats.cancelled
        assert ctx.index.reference_count == 0


class TestNotifications:
    def test_notify_changed_with_buffer_text(self, populated: Path) -> None:
        ctx = WorkspaceIndexContext.open(populated)
        ctx.build()
        result = ctx.notify_changed("docs/guide.md", "@ws/src/app.py:L20\n")
        assert result is not None and result.references_added == 1
        assert ctx.references_at("src/app.py", 12) == []
        assert len(ctx.references_at("src/app.py", 20)) == 1
        assert ctx.references_at("services/billing/invoice.py", 6) == []

    def test_notify_changed_ignores_unsupported(self, populated: Path, make_file: Callable[..., Path]) -> None:
        ctx = WorkspaceIndexContext.open(populated)
        make_file("node_modules/dep/readme.md", "@ws/src/app.py:L1\n")
        assert ctx.notify_changed("node_modules/dep/readme.md") is None
        assert ctx.notify_changed("logo.svg", "@ws/src/app.py:L1") is None

    def test_notify_removed(self, populated: Path) -> None:
        ctx = WorkspaceIndexContext.open(populated)
        ctx.build()
        ctx.notify_removed("src/app.py")
        assert ctx.references_at("src/app.py", 12) == []
        assert len(ctx.references_at("services/billing/invoice.py", 5)) == 1

    def test_create_worker(self, populated: Path) -> None:
        ctx = WorkspaceIndexContext.open(populated)
        worker = ctx.create_worker()
        assert isinstance(worker, IndexWorker)
        assert worker.maintainer is ctx.maintainer


class TestResolvePointer:
    def test_registry(self, populated: Path) -> None:
        ctx = WorkspaceIndexContext.open(populated)
        res = ctx.resolve_pointer("@billing/invoice.py:L1")
        assert res.path == populated / "services/billing/invoice.py"
        assert res.strategy is ResolutionStrategy.MODULE_REGISTRY

    def test_malformed(self, populated: Path) -> None:
        ctx = WorkspaceIndexContext.open(populated)
        with pytest.raises(PointerParseError):
            ctx.resolve_pointer("@billing/invoice.py")

    def test_not_found(self, populated: Path) -> None:
        ctx = WorkspaceIndexContext.open(populated)
        with pytest.raises(ResolutionNotFoundError) as exc_info:
            ctx.resolve_pointer("@billing/refund.py:L1")
        assert exc_info.value.relative_path == "refund.py"


class TestPointerForSelection:
    def test_module_file(self, populated: Path) -> None:
        ctx = WorkspaceIndexContext.open(populated)
        assert ctx.pointer_for_selection("services/billing/invoice.py", 5, 8) == "@billing/invoice.py:L5-8"

    def test_plain_file(self, populated: Path) -> None:
        ctx = WorkspaceIndexContext.open(populated)
        assert ctx.pointer_for_selection("src/app.py", 12) == "@ws/src/app.py:L12"


class TestGitignore:
    def test_respected_when_enabled(self, workspace: Path, make_file: Callable[..., Path]) -> None:
        make_file("src/app.py", lines=5)
        make_file(".gitignore", "drafts/\n")
        make_file("drafts/wip.md", "@ws/src/app.py:L1\n")
        config = InContextConfig(workspace_root=str(workspace), respect_gitignore=True)
        ctx = WorkspaceIndexContext(config)
        ctx.build()
        assert ctx.references_at("src/app.py", 1) == []

    def test_ignored_by_default(self, workspace: Path, make_file: Callable[..., Path], config: InContextConfig) -> None:
        make_file("src/app.py", lines=5)
        make_file(".gitignore", "drafts/\n")
        make_file("drafts/wip.md", "@ws/src/app.py:L1\n")
        ctx = WorkspaceIndexContext(config)
        ctx.build()
        assert len(ctx.references_at("src/app.py", 1)) == 1
