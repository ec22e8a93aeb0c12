"""Dependency tracking engine — the heart of reactant.

Uses contextvars to track which container properties are read while a
computation (effect, watcher or computed) runs, building the dependency
graph automatically. Every run starts by clearing the computation's previous
edges, so the graph always reflects the most recent run only.

Scheduling: writes enqueue dependents into an insertion-ordered pending set.
Outside of batch()/pause() the queue is flushed at the end of the write (or,
with set_scheduler(), once per host tick). Computations scheduled while the
queue flushes join the same pass, bounded by the configured cascade depth.
"""

from __future__ import annotations

import contextvars
from typing import TYPE_CHECKING, Callable, Hashable, TypeVar

from reactant import _anchor
from reactant.config import get_settings
from reactant.errors import ReactiveCycleError

if TYPE_CHECKING:
    from reactant.computed import Computed
    from reactant.effect import Effect
    from reactant.watch import Watcher

    Computation = Computed | Effect | Watcher

T = TypeVar("T")

# The currently-evaluating computation.
# When set, any container read registers itself as a dependency.
current_derivation: contextvars.ContextVar[Computation | None] = contextvars.ContextVar(
    "current_derivation", default=None
)

# Batch depth counter. When > 0, flushing is deferred. pause() shares it.
_batch_depth: int = 0

# Computations awaiting a run, in enqueue order, mapped to their cascade depth.
_pending: dict[Computation, int] = {}

_flushing: bool = False
_running_depth: int = 0

# Host hook for deferred flushing, e.g. asyncio's loop.call_soon.
_scheduler: Callable[[Callable[[], None]], object] | None = None
_flush_requested: bool = False


# ─── Dependency graph ────────────────────────────────────────────────────────

def track(source: Hashable, key: Hashable) -> None:
    """Register the current computation as a dependent of (source, key)."""
    derivation = current_derivation.get()
    if derivation is None or derivation._id not in _anchor.active:
        return
    edge = (source, key)
    _anchor.observers.setdefault(edge, {})[derivation] = None
    _anchor.dependencies[derivation._id].add(edge)


def subscribe(derivation: Computation, source: Hashable, key: Hashable) -> None:
    """Add an explicit edge, independent of any run."""
    edge = (source, key)
    _anchor.observers.setdefault(edge, {})[derivation] = None
    _anchor.dependencies[derivation._id].add(edge)


def clear_dependencies(derivation: Computation, keep: frozenset = frozenset()) -> None:
    """Remove every edge whose dependent is derivation, except those in keep."""
    deps = _anchor.dependencies.get(derivation._id)
    if not deps:
        return
    for edge in deps - keep:
        dependents = _anchor.observers.get(edge)
        if dependents is None:
            continue
        dependents.pop(derivation, None)
        if not dependents:
            del _anchor.observers[edge]
    deps.intersection_update(keep)


def trigger(source: Hashable, key: Hashable) -> None:
    """Notify every dependent of (source, key) that it changed."""
    dependents = _anchor.observers.get((source, key))
    if not dependents:
        return
    begin_batch()
    try:
        for derivation in list(dependents):
            derivation._notify()
    finally:
        end_batch()


def observed_keys(source: Hashable) -> list:
    """Every key of source that currently has dependents."""
    return [key for (src, key) in list(_anchor.observers) if src == source]


def dependents_of(source: Hashable) -> list:
    """Every computation subscribed to any key of source, without duplicates."""
    found: dict = {}
    for (src, _key), dependents in list(_anchor.observers.items()):
        if src == source:
            found.update(dependents)
    return list(found)


def untrack(fn: Callable[[], T]) -> T:
    """Run fn with tracking disabled. Reads inside do not subscribe.

    Usage:
        effect(lambda: log.append((state.a, untrack(lambda: state.b))))
        # re-runs when a changes, never when b changes
    """
    token = current_derivation.set(None)
    try:
        return fn()
    finally:
        current_derivation.reset(token)


# ─── Scheduler ───────────────────────────────────────────────────────────────

def begin_batch() -> None:
    """Enter a batching scope. Nested batches are supported."""
    global _batch_depth
    _batch_depth += 1


def end_batch() -> None:
    """Exit a batching scope. When the outermost scope exits, flush pending computations."""
    global _batch_depth
    _batch_depth -= 1
    if _batch_depth == 0:
        request_flush()


def pause() -> None:
    """Suppress flushing until the matching resume()."""
    begin_batch()


def resume(flush: bool = True) -> None:
    """Undo one pause(). Flushes when the last pause is lifted and flush is true."""
    global _batch_depth
    _batch_depth = max(0, _batch_depth - 1)
    if flush and _batch_depth == 0:
        request_flush()


def is_batching() -> bool:
    return _batch_depth > 0


def schedule(derivation: Computation) -> None:
    """Queue a computation for the next flush. Queuing twice runs it once."""
    if derivation in _pending:
        return
    depth = _running_depth + 1 if _flushing else 0
    limit = get_settings().max_cascade_depth
    if depth > limit:
        _pending.clear()
        raise ReactiveCycleError(limit, derivation)
    _pending[derivation] = depth


def request_flush() -> None:
    """Flush now, or hand the flush to the host scheduler when one is set."""
    global _flush_requested
    if _batch_depth > 0 or _flushing or not _pending:
        return
    if _scheduler is None:
        flush()
    elif not _flush_requested:
        _flush_requested = True
        _scheduler(_scheduled_flush)


def _scheduled_flush() -> None:
    global _flush_requested
    _flush_requested = False
    if _batch_depth == 0:
        flush()


def flush() -> None:
    """Run pending computations in enqueue order, including cascades."""
    global _flushing, _running_depth
    if _flushing:
        return
    _flushing = True
    try:
        while _pending:
            derivation = next(iter(_pending))
            _running_depth = _pending.pop(derivation)
            derivation._run()
    finally:
        _flushing = False
        _running_depth = 0


def set_scheduler(scheduler: Callable[[Callable[[], None]], object] | None) -> None:
    """Defer flushes to a host scheduler, or None for synchronous flushing.

    Call once from the thread that owns the reactive state:
        reactant.set_scheduler(asyncio.get_running_loop().call_soon)

    After this, writes outside batch() request a single flush per host tick
    instead of flushing at the end of each write.
    """
    global _scheduler, _flush_requested
    _scheduler = scheduler
    _flush_requested = False


def get_pending_count() -> int:
    """Number of computations waiting to run. Useful for testing."""
    return len(_pending)
