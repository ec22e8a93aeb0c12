"""Watchers — old/new callbacks for one explicit source.

watch(container, key, callback) subscribes to exactly (container, key). It
does not run on creation. On each flush where the key was written, it reads
the new value, compares it with the stored one using the container equality
rule, and calls callback(new, old) only when they differ. Reads inside the
callback are untracked.

watch(container, getter, callback) and reaction(data_fn, effect_fn) track a
getter instead, like an effect, and compare its result.

Unlike effects, a watcher whose callback writes its own key re-queues itself
(the cascade depth still bounds it).

All state lives in _anchor — instances are thin handles holding an _id.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from reactant import _anchor
from reactant._tracking import (
    begin_batch,
    clear_dependencies,
    end_batch,
    current_derivation,
    schedule,
    subscribe,
    untrack,
)
from reactant.reactive import Reactive, same_value

logger = logging.getLogger("reactant.watch")

ErrorHandler = Callable[[BaseException], None]

_UNSET = object()


def _log_error(exc: BaseException) -> None:
    logger.error("Error in safe watcher", exc_info=exc)


class Watcher:
    """Calls back with (new, old) when its source value changes."""

    __slots__ = ("_id", "_callback", "_last_value", "_explicit", "_on_error")

    def __init__(
        self,
        source: Callable[[], Any],
        callback: Callable[[Any, Any], None],
        *,
        explicit: frozenset = frozenset(),
        on_error: ErrorHandler | None = None,
    ) -> None:
        self._id = _anchor.new_id()
        _anchor.derivation_fns[self._id] = source
        _anchor.dependencies[self._id] = set()
        _anchor.active.add(self._id)
        self._callback = callback
        self._last_value = _UNSET
        self._explicit = explicit
        self._on_error = on_error
        for edge in explicit:
            subscribe(self, *edge)

    @property
    def _source(self) -> Callable[[], Any]:
        return _anchor.derivation_fns[self._id]

    @property
    def disposed(self) -> bool:
        return self._id not in _anchor.active

    @property
    def value(self) -> Any:
        """The last value seen by this watcher."""
        return None if self._last_value is _UNSET else self._last_value

    def _read(self) -> Any:
        if self._explicit:
            return untrack(self._source)
        clear_dependencies(self)
        token = current_derivation.set(self)
        try:
            return self._source()
        finally:
            current_derivation.reset(token)

    def _prime(self) -> None:
        """Read the initial value without calling back."""
        self._last_value = self._read()

    def _notify(self) -> None:
        if self._id not in _anchor.active:
            return
        schedule(self)

    def _run(self) -> None:
        if self._id not in _anchor.active:
            return

        _anchor.running.add(self._id)
        try:
            try:
                new_value = self._read()
            except Exception as exc:
                if self._on_error is None:
                    raise
                self._on_error(exc)
                return
            old_value = self._last_value
            if old_value is not _UNSET and same_value(new_value, old_value):
                return
            try:
                untrack(lambda: self._callback(new_value, None if old_value is _UNSET else old_value))
            except Exception as exc:
                if self._on_error is None:
                    raise
                self._on_error(exc)
            self._last_value = new_value
        finally:
            _anchor.running.discard(self._id)

    def dispose(self) -> None:
        """Stop watching. Disconnects from all dependencies."""
        if self._id not in _anchor.active:
            return
        clear_dependencies(self)
        _anchor.forget(self._id)

    def __call__(self) -> None:
        self.dispose()

    def __repr__(self) -> str:
        state = "disposed" if self._id not in _anchor.active else "active"
        return f"Watcher({self._last_value!r}, {state})"


def _source_for(container: Reactive, key: Any) -> tuple[Callable[[], Any], frozenset]:
    if callable(key):
        return key, frozenset()
    return (lambda: container.peek(key)), frozenset({(container._id, key)})


def watch(
    container: Reactive,
    key: Any,
    callback: Callable[[Any, Any], None],
    *,
    on_error: ErrorHandler | None = None,
) -> Watcher:
    """Call callback(new, old) whenever container[key] changes.

    key may also be a zero-argument getter, which is tracked like an effect.
    The watcher does not fire on creation. Returns the Watcher.

    Usage:
        state = reactive({"count": 1})
        seen = []
        watch(state, "count", lambda new, old: seen.append((new, old)))
        state.count = 5
        # seen == [(5, 1)]
    """
    source, explicit = _source_for(container, key)
    w = Watcher(source, callback, explicit=explicit, on_error=on_error)
    w._prime()
    return w


def safe_watch(
    container: Reactive,
    key: Any,
    callback: Callable[[Any, Any], None],
    on_error: ErrorHandler | None = None,
) -> Watcher:
    """watch() whose callback failures go to on_error; the watcher stays live.

    Without on_error, failures are logged on the "reactant.watch" logger.
    """
    return watch(container, key, callback, on_error=on_error or _log_error)


def reaction(
    data_fn: Callable[[], Any],
    effect_fn: Callable[[Any], None],
    *,
    fire_immediately: bool = False,
) -> Watcher:
    """Track data_fn; call effect_fn with the new value when the result changes.

    Unlike effect(), effect_fn only fires when data_fn's *return value*
    changes, not on every dependency notification.

    Usage:
        user = reactive({"first": "Alice", "last": "Smith"})
        names = []
        r = reaction(lambda: f"{user.first} {user.last}", names.append)
        # names == [] — data_fn ran to establish deps, effect doesn't fire yet
        user.first = "Bob"
        # names == ["Bob Smith"]
        r.dispose()
    """
    w = Watcher(data_fn, lambda new, _old: effect_fn(new))
    if fire_immediately:
        begin_batch()
        try:
            w._run()
        finally:
            end_batch()
    else:
        w._prime()
    return w
