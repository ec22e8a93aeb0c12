"""Cleanup collectors — dispose many subscriptions in one call.

A Collector holds disposers (plain callables, or anything with a dispose()
method such as Effect, Watcher, Computed or AutoSave) and runs them all
once. A failing disposer is logged and the rest still run.

Usage:
    with collector() as bag:
        bag.add(effect(render))
        bag.add(watch(state, "count", on_count))
    # both disposed here
"""

from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger("reactant.cleanup")


def _as_disposer(item: Any) -> Callable[[], None] | None:
    dispose = getattr(item, "dispose", None)
    if callable(dispose):
        return dispose
    if callable(item):
        return item
    return None


class Collector:
    __slots__ = ("_disposers", "_disposed")

    def __init__(self) -> None:
        self._disposers: list[Callable[[], None]] = []
        self._disposed = False

    @property
    def size(self) -> int:
        return len(self._disposers)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def add(self, item: Any) -> Collector:
        """Register a disposer. Ignored (with a warning) once cleaned up."""
        if self._disposed:
            logger.warning("Cannot add to a disposed collector: %r", item)
            return self
        disposer = _as_disposer(item)
        if disposer is not None:
            self._disposers.append(disposer)
        return self

    def cleanup(self) -> None:
        """Run every disposer in registration order. Only the first call does anything."""
        if self._disposed:
            return
        self._disposed = True
        for disposer in self._disposers:
            try:
                disposer()
            except Exception as exc:
                logger.error("Error in collector cleanup", exc_info=exc)
        self._disposers.clear()

    dispose = cleanup

    def __call__(self) -> None:
        self.cleanup()

    def __len__(self) -> int:
        return len(self._disposers)

    def __enter__(self) -> Collector:
        return self

    def __exit__(self, *exc_info) -> None:
        self.cleanup()

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else f"size={len(self._disposers)}"
        return f"Collector({state})"


def collector() -> Collector:
    return Collector()


def scope(fn: Callable[[Callable[[Any], Collector]], None]) -> Callable[[], None]:
    """Call fn(add); return a function disposing everything fn added.

    Usage:
        stop = scope(lambda add: (add(effect(a)), add(effect(b))))
        stop()
    """
    bag = Collector()
    fn(bag.add)
    return bag.cleanup
