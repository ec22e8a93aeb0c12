"""Data anchor — plain Python structures that hold all reactive state.

This module stores the dependency graph and the per-computation state for
every live Effect, Watcher and Computed. Disposing a computation drops
all of its entries. Separating data from behavior means the
behavior modules stay thin handles holding an _id.

Graph edges are keyed by (source, key), where source is the identity of a
container's backing record (or a Computed handle) and key is the property
read. Keys are plain ints and handles, so nothing here extends the lifetime
of a container.
"""

import itertools

# Dependency graph, both directions.
observers: dict[tuple, dict] = {}  # (source, key) -> ordered set of computations
dependencies: dict[int, set] = {}  # computation id -> set of (source, key) edges

# Computation state
derivation_fns: dict[int, object] = {}  # computation id -> callable
dirty_flags: dict[int, bool] = {}
cached_values: dict[int, object] = {}
active: set[int] = set()  # ids of computations not yet disposed
running: set[int] = set()  # computations currently executing their body

# ID generation — itertools.count is thread-safe (C-level GIL atomic)
_id_counter = itertools.count(1)


def new_id() -> int:
    return next(_id_counter)


def forget(comp_id: int) -> None:
    """Drop every record held for a computation id."""
    dependencies.pop(comp_id, None)
    derivation_fns.pop(comp_id, None)
    dirty_flags.pop(comp_id, None)
    cached_values.pop(comp_id, None)
    running.discard(comp_id)
    active.discard(comp_id)
