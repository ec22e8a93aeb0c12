"""Async operation controller — race-safe asynchronous state.

An AsyncOperation owns a reactive container with a fixed shape:

    data, loading, error, sequence, cancel_token

plus computed is_success / is_error / is_idle properties.

Every invoke() bumps `sequence`, cancels the previous token and issues a new
one. When the operation settles, its outcome is committed only if its
sequence number is still the current one and its token was not cancelled.
The sequence check is what guarantees that an older, slower invocation can
never overwrite a newer one, even when the body ignores its token.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from reactant.action import transaction
from reactant.cancel import CancelToken
from reactant.errors import NoOperationError, OperationCancelled
from reactant.reactive import ReactiveDict

logger = logging.getLogger("reactant.async_state")

Operation = Callable[[CancelToken], Awaitable[Any] | Any]


@dataclass(frozen=True)
class AsyncResult:
    """Outcome of one invoke() call, as seen by its caller."""

    success: bool
    data: Any = None
    error: BaseException | None = None
    stale: bool = False
    aborted: bool = False


class AsyncOperation:
    """Reactive state for an async operation where only the latest invocation commits.

    Usage:
        op = async_state(None)

        async def load(token):
            return await fetch_user(cancel=token)

        result = await op.invoke(load)
        op.state.data, op.state.loading, op.state.error
    """

    def __init__(
        self,
        initial: Any = None,
        *,
        on_success: Callable[[Any], None] | None = None,
        on_error: Callable[[BaseException], None] | None = None,
    ) -> None:
        self._initial = initial
        self._last_fn: Operation | None = None
        self._on_success = on_success
        self._on_error = on_error
        self.state = ReactiveDict(self._idle_shape())
        self.state.add_computed(
            "is_success", lambda s: not s.loading and s.error is None and s.data is not None
        )
        self.state.add_computed("is_error", lambda s: not s.loading and s.error is not None)
        self.state.add_computed(
            "is_idle", lambda s: not s.loading and s.data is None and s.error is None
        )

    def _idle_shape(self) -> dict:
        return {
            "data": self._initial,
            "loading": False,
            "error": None,
            "sequence": 0,
            "cancel_token": None,
        }

    def _is_current(self, seq: int, token: CancelToken) -> bool:
        return self.state.peek("sequence") == seq and not token.cancelled

    async def invoke(self, fn: Operation) -> AsyncResult:
        """Run fn(token) as the latest invocation. Earlier ones are cancelled."""
        self._last_fn = fn
        token = CancelToken()
        with transaction():
            previous = self.state.peek("cancel_token")
            if previous is not None:
                previous.cancel()
            seq = self.state.peek("sequence") + 1
            self.state.update(
                sequence=seq, cancel_token=token, loading=True, error=None
            )

        try:
            result = fn(token)
            if inspect.isawaitable(result):
                result = await result
        except OperationCancelled:
            if self._is_current(seq, token):
                # Cancelled by something other than a newer invoke or abort().
                self.state.update(loading=False, cancel_token=None)
                return AsyncResult(success=False, aborted=True)
            return AsyncResult(success=False, aborted=True, stale=True)
        except asyncio.CancelledError:
            if self._is_current(seq, token):
                token.cancel()
                self.state.update(loading=False, cancel_token=None)
            raise
        except Exception as exc:
            if not self._is_current(seq, token):
                return AsyncResult(success=False, error=exc, stale=True)
            logger.debug("Operation %d failed: %r", seq, exc)
            self.state.update(error=exc, loading=False, cancel_token=None)
            if self._on_error is not None:
                self._on_error(exc)
            return AsyncResult(success=False, error=exc)

        if not self._is_current(seq, token):
            return AsyncResult(success=False, stale=True, aborted=token.cancelled)
        self.state.update(data=result, error=None, loading=False, cancel_token=None)
        if self._on_success is not None:
            self._on_success(result)
        return AsyncResult(success=True, data=result)

    execute = invoke

    async def refetch(self) -> AsyncResult:
        """Invoke the last operation again."""
        if self._last_fn is None:
            raise NoOperationError()
        return await self.invoke(self._last_fn)

    def abort(self) -> None:
        """Cancel the in-flight operation without waiting for it to notice."""
        token = self.state.peek("cancel_token")
        if token is None:
            return
        token.cancel()
        self.state.update(loading=False, cancel_token=None)

    def reset(self) -> None:
        """Abort, then restore the idle shape exactly (sequence back to 0)."""
        with transaction():
            self.abort()
            self.state.update(self._idle_shape())

    def __repr__(self) -> str:
        s = self.state.raw
        return (
            f"AsyncOperation(seq={s['sequence']}, loading={s['loading']}, "
            f"error={s['error']!r})"
        )


def async_state(initial: Any = None, **options) -> AsyncOperation:
    """Create an AsyncOperation with `data` starting at initial."""
    return AsyncOperation(initial, **options)
