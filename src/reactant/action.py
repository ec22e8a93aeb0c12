"""Actions, transactions and batch() — batched state mutations.

Wrapping mutations in batch(), an @action or `with transaction()` defers the
flush until the outermost scope exits, so N writes produce one re-run per
affected computation. pause()/resume() give the same suppression under
manual control.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Callable, ParamSpec, TypeVar

from reactant._tracking import begin_batch, end_batch, pause, resume, untrack

P = ParamSpec("P")
R = TypeVar("R")

__all__ = ["action", "batch", "pause", "resume", "transaction", "untrack"]


def batch(fn: Callable[[], R]) -> R:
    """Run fn with flushing suppressed, then flush once. Returns fn's result.

    Usage:
        batch(lambda: state.update(a=1, b=2))
    """
    begin_batch()
    try:
        return fn()
    finally:
        end_batch()


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: batch all container mutations inside fn.

    Effects only re-run after fn returns, not during.

    Usage:
        state = reactive({"a": 0, "b": 0})

        @action
        def swap():
            state.a, state.b = state.b, state.a
            # effects see both changes at once, not one at a time
    """

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        begin_batch()
        try:
            return fn(*args, **kwargs)
        finally:
            end_batch()

    return wrapper


@contextmanager
def transaction():
    """Context manager for batching mutations.

    Usage:
        with transaction():
            state.a = 1
            state.b = 2
            # effects fire here, after both are set
    """
    begin_batch()
    try:
        yield
    finally:
        end_batch()
