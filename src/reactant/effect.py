"""Effects — side effects triggered by reactive state changes.

Unlike Computed (which is lazy and only evaluates on read), an Effect runs
immediately when created and eagerly re-runs on every flush where one of the
properties it read during its last run changed. Writes made by the first run
are flushed once the body returns, exactly as they would be on a re-run.

safe_effect() runs the body inside a failure boundary: an exception is routed
to an error handler and the effect stays subscribed for future flushes.

async_effect() hands the body a CancelToken; each re-run cancels the previous
token and runs the cleanup the previous run returned.

All state lives in _anchor — instances are thin handles holding an _id.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable

from reactant import _anchor
from reactant._tracking import (
    begin_batch,
    clear_dependencies,
    current_derivation,
    end_batch,
    schedule,
    untrack,
)
from reactant.cancel import CancelToken
from reactant.config import get_settings
from reactant.errors import OperationCancelled

logger = logging.getLogger("reactant.effect")

ErrorHandler = Callable[[BaseException], None]


def _log_error(exc: BaseException) -> None:
    logger.error("Error in safe effect", exc_info=exc)


class Effect:
    """A reactive side effect that re-runs when its dependencies change."""

    __slots__ = ("_id", "_allow_self_trigger", "_on_error")

    def __init__(
        self,
        fn: Callable[[], None],
        *,
        allow_self_trigger: bool | None = None,
        on_error: ErrorHandler | None = None,
    ) -> None:
        self._id = _anchor.new_id()
        _anchor.derivation_fns[self._id] = fn
        _anchor.dependencies[self._id] = set()
        _anchor.active.add(self._id)
        self._allow_self_trigger = allow_self_trigger
        self._on_error = on_error

    @property
    def _fn(self) -> Callable[[], None]:
        return _anchor.derivation_fns[self._id]

    @property
    def disposed(self) -> bool:
        return self._id not in _anchor.active

    def _self_trigger_allowed(self) -> bool:
        if self._allow_self_trigger is None:
            return get_settings().effect_self_trigger
        return self._allow_self_trigger

    def _notify(self) -> None:
        """A dependency changed: queue a re-run, unless it is our own write."""
        if self._id not in _anchor.active:
            return
        if self._id in _anchor.running and not self._self_trigger_allowed():
            return
        schedule(self)

    def _run(self) -> None:
        """Re-evaluate the effect function, re-tracking dependencies."""
        if self._id not in _anchor.active:
            return

        clear_dependencies(self)

        _anchor.running.add(self._id)
        token = current_derivation.set(self)
        try:
            self._fn()
        except Exception as exc:
            if self._on_error is None:
                raise
            self._on_error(exc)
        finally:
            current_derivation.reset(token)
            _anchor.running.discard(self._id)

    def _start(self) -> Effect:
        """First run. Its writes flush after the body returns."""
        begin_batch()
        try:
            self._run()
        finally:
            end_batch()
        return self

    def dispose(self) -> None:
        """Stop this effect. Disconnects from all dependencies."""
        if self._id not in _anchor.active:
            return
        clear_dependencies(self)
        _anchor.forget(self._id)

    def __call__(self) -> None:
        self.dispose()

    def __repr__(self) -> str:
        if self._id not in _anchor.active:
            return "Effect(disposed)"
        name = getattr(_anchor.derivation_fns.get(self._id), "__name__", "?")
        return f"Effect({name}, active)"


def effect(fn: Callable[[], None], *, allow_self_trigger: bool | None = None) -> Effect:
    """Run fn immediately, then re-run whenever any property it read changes.

    Returns the Effect (call .dispose() to stop).

    Usage:
        state = reactive({"count": 0})
        log = []

        e = effect(lambda: log.append(state.count * 2))
        # log == [0] — ran immediately

        with transaction():
            state.count = 1
            state.count = 2
        # log == [0, 4] — one re-run for the whole batch

        e.dispose()
        state.count = 3
        # log == [0, 4] — stopped

    An effect that writes a property it reads does not re-queue itself unless
    allow_self_trigger is true (or configured globally).
    """
    return Effect(fn, allow_self_trigger=allow_self_trigger)._start()


def safe_effect(fn: Callable[[], None], on_error: ErrorHandler | None = None) -> Effect:
    """effect() whose exceptions go to on_error instead of out of the flush.

    The effect is not disposed on failure; it re-runs on the next change.
    Without on_error, failures are logged on the "reactant.effect" logger.
    """
    return Effect(fn, on_error=on_error or _log_error)._start()


def effects(fns) -> Callable[[], None]:
    """Create one effect per function. Returns a function disposing all of them."""
    created = [effect(fn) for fn in (fns.values() if hasattr(fns, "values") else fns)]

    def _dispose_all() -> None:
        for e in created:
            e.dispose()

    return _dispose_all


class AsyncEffect:
    """An effect whose body receives a CancelToken and may return a cleanup.

    The body may be a plain function or a coroutine function. Awaitable
    results run as tasks on the running loop; the task inherits the tracking
    context, so reads made after an await are dependencies too. Whatever the
    body returns (or its task resolves to), if callable, is the cleanup.
    """

    __slots__ = ("_fn", "_effect", "_token", "_cleanup", "_on_error", "_tasks")

    def __init__(self, fn: Callable[[CancelToken], Any], *, on_error: ErrorHandler | None = None) -> None:
        self._fn = fn
        self._token: CancelToken | None = None
        self._cleanup: Callable[[], None] | None = None
        self._on_error = on_error
        self._tasks: set[asyncio.Task] = set()
        self._effect = Effect(self._step, on_error=on_error)

    @property
    def disposed(self) -> bool:
        return self._effect.disposed

    @property
    def token(self) -> CancelToken | None:
        """Token handed to the latest run."""
        return self._token

    def _release(self) -> None:
        cleanup, self._cleanup = self._cleanup, None
        if cleanup is not None:
            _run_cleanup(cleanup)
        if self._token is not None:
            self._token.cancel()

    def _step(self) -> None:
        self._release()
        token = self._token = CancelToken()
        result = self._fn(token)
        if inspect.isawaitable(result):
            task = asyncio.get_running_loop().create_task(self._settle(result, token))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        elif callable(result):
            self._cleanup = result

    async def _settle(self, awaitable, token: CancelToken) -> None:
        try:
            cleanup = await awaitable
        except OperationCancelled:
            return
        except Exception as exc:
            (self._on_error or _log_async_error)(exc)
            return
        if not callable(cleanup):
            return
        if token.cancelled:
            # A newer run (or dispose) already released this one.
            _run_cleanup(cleanup)
        else:
            self._cleanup = cleanup

    def dispose(self) -> None:
        """Stop re-running, run the last cleanup and cancel the last token."""
        if self._effect.disposed:
            return
        self._effect.dispose()
        self._release()

    def __call__(self) -> None:
        self.dispose()

    def __repr__(self) -> str:
        state = "disposed" if self._effect.disposed else "active"
        return f"AsyncEffect({getattr(self._fn, '__name__', '?')}, {state})"


def _run_cleanup(cleanup: Callable[[], None]) -> None:
    try:
        untrack(cleanup)
    except Exception as exc:
        logger.error("Error in effect cleanup", exc_info=exc)


def _log_async_error(exc: BaseException) -> None:
    logger.error("Error in async effect", exc_info=exc)


def async_effect(
    fn: Callable[[CancelToken], Any], on_error: ErrorHandler | None = None
) -> AsyncEffect:
    """Run fn(token) now and on every change of what it reads.

    Each re-run cancels the previous token and runs the previous cleanup;
    dispose() does both for the last run. Coroutine bodies need a running
    event loop.

    Usage:
        async def search(token):
            query = state.query
            results = await fetch(query)
            if not token.cancelled:
                state.results = results

        stop = async_effect(search)
    """
    handle = AsyncEffect(fn, on_error=on_error)
    handle._effect._start()
    return handle
