"""CancelToken — an abort-signal-like handle passed into async operations.

Cancelling is fire-and-forget: the token flips to cancelled and runs its
callbacks, but nothing waits for the operation to notice. Cooperative bodies
check .cancelled, call raise_if_cancelled(), or await wait().
"""

from __future__ import annotations

import asyncio
from typing import Callable

from reactant.errors import OperationCancelled


class CancelToken:
    """Disposable cancellation flag with callbacks."""

    __slots__ = ("_cancelled", "_callbacks", "_event")

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []
        self._event: asyncio.Event | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Mark cancelled and run callbacks. Cancelling twice is a no-op."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._event is not None:
            self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for cb in callbacks:
            cb()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelled("operation was cancelled")

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run callback on cancel (immediately if already cancelled). Returns a remover."""
        if self._cancelled:
            callback()
            return lambda: None
        self._callbacks.append(callback)

        def _remove() -> None:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass  # already removed or fired

        return _remove

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        if self._cancelled:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    def __repr__(self) -> str:
        return f"CancelToken({'cancelled' if self._cancelled else 'live'})"
