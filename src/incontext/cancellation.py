"""Cooperative cancellation for workspace scans.

Scans run in worker threads (``asyncio.to_thread``) and poll their token
between files, so the token is built on :class:`threading.Event` and may
be cancelled from any thread. A cancelled scan stops early; the index
stays valid for whatever was processed before the stop.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from incontext.errors import CancellationError

logger = logging.getLogger(__name__)


@dataclass
class CancellationToken:
    """Read side of a cancellation signal."""

    _event: threading.Event = field(default_factory=threading.Event, repr=False)
    _reason: str = ""
    _callbacks: list[Callable[[str], None]] = field(default_factory=list, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        """Signal cancellation. Only the first call has any effect."""
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for cb in callbacks:
            try:
                cb(reason)
            except Exception:
                logger.exception("Cancellation callback failed")

    def check(self) -> None:
        """Raise CancellationError if cancelled."""
        if self.is_cancelled:
            raise CancellationError(self._reason or "Operation cancelled")

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or *timeout* elapses; True if cancelled."""
        return self._event.wait(timeout)

    def on_cancel(self, callback: Callable[[str], None]) -> None:
        """Run *callback(reason)* on cancellation, immediately if already cancelled."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback(self._reason)


@dataclass
class CancellationTokenSource:
    """Owns a token; linked children are cancelled with their parent."""

    _token: CancellationToken = field(default_factory=CancellationToken)
    _children: list[CancellationTokenSource] = field(default_factory=list, repr=False)

    @property
    def token(self) -> CancellationToken:
        return self._token

    def cancel(self, reason: str = "cancelled") -> None:
        self._token.cancel(reason)
        for child in self._children:
            child.cancel(reason)

    def create_linked(self) -> CancellationTokenSource:
        """Child source, cancelled at once if this one already is."""
        child = CancellationTokenSource()
        self._children.append(child)
        if self._token.is_cancelled:
            child.cancel(self._token.reason)
        return child

    def dispose(self) -> None:
        self._children.clear()
