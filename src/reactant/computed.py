"""Computed values — derived state with automatic dependency tracking.

A Computed wraps a function. When evaluated, it tracks which container
properties the function reads and caches the result. When any dependency
changes, the cached value is marked dirty. On next read, it re-evaluates.

Computed values are pull-based: a write never recomputes them, and they are
never run by the scheduler. Reading twice without an intervening write runs
the function once.

All live state sits in _anchor — instances are thin handles holding an _id.
A disposed Computed keeps only its last value, on the handle.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from reactant import _anchor
from reactant._tracking import clear_dependencies, current_derivation, track, trigger
from reactant.errors import ReactiveCycleError

T = TypeVar("T")

_UNSET = object()

# Key under which readers of a Computed are registered.
VALUE = "value"


class Computed(Generic[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = ("_id", "_final")

    def __init__(self, fn: Callable[[], T]) -> None:
        self._id = _anchor.new_id()
        self._final = None
        _anchor.derivation_fns[self._id] = fn
        _anchor.cached_values[self._id] = _UNSET
        _anchor.dirty_flags[self._id] = True
        _anchor.dependencies[self._id] = set()
        _anchor.active.add(self._id)

    @property
    def _fn(self) -> Callable[[], T]:
        return _anchor.derivation_fns[self._id]

    @property
    def dirty(self) -> bool:
        return _anchor.dirty_flags.get(self._id, False)

    @property
    def disposed(self) -> bool:
        return self._id not in _anchor.active

    @property
    def value(self) -> T:
        return self.get()

    def get(self) -> T:
        """Read the computed value. Recomputes if dirty."""
        if self._id not in _anchor.active:
            return self._final

        track(self, VALUE)
        if _anchor.dirty_flags[self._id]:
            self._recompute()

        return _anchor.cached_values[self._id]

    def _recompute(self) -> None:
        """Re-evaluate the function, tracking dependencies."""
        if self._id in _anchor.running:
            raise ReactiveCycleError(culprit=self)
        clear_dependencies(self)

        _anchor.running.add(self._id)
        token = current_derivation.set(self)
        try:
            _anchor.cached_values[self._id] = self._fn()
        finally:
            current_derivation.reset(token)
            _anchor.running.discard(self._id)

        _anchor.dirty_flags[self._id] = False

    def _notify(self) -> None:
        """Called when a dependency changed.

        For Computed, we mark dirty and propagate to our own readers.
        We don't recompute eagerly — that happens on next .get().
        """
        if self._id not in _anchor.active or _anchor.dirty_flags[self._id]:
            return
        _anchor.dirty_flags[self._id] = True
        trigger(self, VALUE)

    def _run(self) -> None:
        # Never queued by the scheduler; present for the computation interface.
        self._notify()

    def dispose(self) -> None:
        """Disconnect from all dependencies. Reads return the last cached value."""
        if self._id not in _anchor.active:
            return
        cached = _anchor.cached_values.get(self._id, _UNSET)
        self._final = None if cached is _UNSET else cached
        clear_dependencies(self)
        _anchor.observers.pop((self, VALUE), None)
        _anchor.forget(self._id)

    def __repr__(self) -> str:
        if self._id not in _anchor.active:
            return f"Computed(disposed, last={self._final!r})"
        name = getattr(_anchor.derivation_fns.get(self._id), "__name__", "?")
        if _anchor.dirty_flags[self._id]:
            return f"Computed({name}, dirty)"
        return f"Computed({name}, cached={_anchor.cached_values[self._id]!r})"


def computed(fn: Callable[[], T]) -> Computed[T]:
    """Decorator/factory to create a Computed from a function.

    Usage:
        state = reactive({"count": 0})

        @computed
        def doubled():
            return state.count * 2

        doubled.value  # 0
        state.count = 5
        doubled.value  # 10
    """
    return Computed(fn)
