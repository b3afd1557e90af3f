"""Tests for cancellation tokens used by workspace scans."""

from __future__ import annotations

import threading

import pytest

from incontext.cancellation import CancellationToken, CancellationTokenSource
from incontext.errors import CancellationError


class TestCancellationToken:
    def test_fresh_token_passes_check(self) -> None:
        token = CancellationToken()
        assert not token.is_cancelled
        token.check()

    def test_cancel_records_reason(self) -> None:
        token = CancellationToken()
        token.cancel("scan aborted")
        assert token.is_cancelled and token.reason == "scan aborted"

    def test_first_reason_kept(self) -> None:
        token = CancellationToken()
        token.cancel("first")
        token.cancel("second")
        assert token.reason == "first"

    def test_check_raises_when_cancelled(self) -> None:
        token = CancellationToken()
        token.cancel("stop")
        with pytest.raises(CancellationError, match="stop"):
            token.check()

    def test_wait_from_another_thread(self) -> None:
        token = CancellationToken()
        timer = threading.Timer(0.01, token.cancel, args=("timeout",))
        timer.start()
        try:
            assert token.wait(timeout=2.0)
        finally:
            timer.cancel()
        assert token.reason == "timeout"

    def test_wait_times_out(self) -> None:
        assert CancellationToken().wait(timeout=0.01) is False

    def test_callbacks(self) -> None:
        token = CancellationToken()
        seen: list[str] = []
        token.on_cancel(seen.append)
        token.cancel("done")
        token.on_cancel(seen.append)
        assert seen == ["done", "done"]

    def test_failing_callback_does_not_block_others(self) -> None:
        token = CancellationToken()
        seen: list[str] = []

        def broken(reason: str) -> None:
            raise RuntimeError(reason)

        token.on_cancel(broken)
        token.on_cancel(seen.append)
        token.cancel("x")
        assert seen == ["x"]


class TestCancellationTokenSource:
    def test_source_cancels_its_token(self) -> None:
        cts = CancellationTokenSource()
        assert not cts.token.is_cancelled
        cts.cancel("shutdown")
        assert cts.token.reason == "shutdown"

    def test_parent_cancels_linked_children(self) -> None:
        root = CancellationTokenSource()
        children = [root.create_linked() for _ in range(3)]
        root.cancel("workspace closed")
        assert all(c.token.reason == "workspace closed" for c in children)

    def test_child_does_not_cancel_parent(self) -> None:
        parent = CancellationTokenSource()
        child = parent.create_linked()
        child.cancel()
        assert not parent.token.is_cancelled

    def test_linked_after_cancel(self) -> None:
        parent = CancellationTokenSource()
        parent.cancel("early")
        assert parent.create_linked().token.is_cancelled

    def test_dispose(self) -> None:
        parent = CancellationTokenSource()
        child = parent.create_linked()
        parent.dispose()
        parent.cancel()
        assert not child.token.is_cancelled
