"""Reactive containers — plain records that track their readers.

reactive(record) wraps a dict or list in a container that intercepts every
read and write. Reads inside a running computation register a dependency on
(record, key); writes that change a value notify the dependents of that key.

Nested dicts and lists are wrapped lazily on first read. A record has at most
one live wrapper at a time, and graph edges are keyed by the record itself,
so every path to the same record shares the same dependents.

Lists report length changes as a single write to the STRUCTURE key, so a
computation that only reads len() never depends on individual indices.
"""

from __future__ import annotations

import weakref
from collections.abc import MutableMapping, MutableSequence
from typing import Any, Callable, Iterable, Iterator

from reactant._tracking import (
    begin_batch,
    dependents_of,
    end_batch,
    observed_keys,
    track,
    trigger,
    untrack,
)
from reactant.errors import ReadOnlyError


class _Sentinel:
    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name


# Key reported when a record's shape (key set, list length) changes.
STRUCTURE = _Sentinel("STRUCTURE")
_MISSING = _Sentinel("MISSING")

_PRIMITIVES = (type(None), bool, int, float, complex, str, bytes)

# record id -> live wrapper. Weak values: the registry never keeps a wrapper alive.
_wrappers: weakref.WeakValueDictionary[int, Reactive] = weakref.WeakValueDictionary()


def same_value(a: object, b: object) -> bool:
    """Container equality: identity for objects, value equality for primitives."""
    if a is b:
        return True
    return type(a) is type(b) and isinstance(a, _PRIMITIVES) and a == b


def is_reactive(value: object) -> bool:
    return isinstance(value, Reactive)


def to_raw(value: Any) -> Any:
    """Unwrap a container to its backing record. Other values pass through."""
    if isinstance(value, Reactive):
        return value._raw
    return value


def reactive(record: Any) -> Any:
    """Wrap a dict or list in a reactive container. Other values pass through.

    Usage:
        state = reactive({"count": 0})
        effect(lambda: print(state.count))  # prints 0
        state.count += 1                    # prints 1
    """
    if isinstance(record, Reactive):
        return record
    if isinstance(record, dict):
        kind = ReactiveDict
    elif isinstance(record, list):
        kind = ReactiveList
    else:
        return record
    existing = _wrappers.get(id(record))
    if existing is not None and existing._raw is record:
        return existing
    wrapper = kind.__new__(kind)
    wrapper._attach(record)
    return wrapper


def _snapshot(value: Any) -> Any:
    """Deep plain copy of a value, reading every nested property (tracked)."""
    if isinstance(value, ReactiveDict):
        return {k: _snapshot(value[k]) for k in value}
    if isinstance(value, ReactiveList):
        return [_snapshot(v) for v in value]
    return value


class Reactive:
    """Behavior shared by ReactiveDict and ReactiveList."""

    __slots__ = ("_raw", "_id", "_children", "_computed", "__weakref__")

    def _attach(self, record) -> None:
        object.__setattr__(self, "_raw", record)
        object.__setattr__(self, "_id", id(record))
        object.__setattr__(self, "_children", {})
        object.__setattr__(self, "_computed", {})
        _wrappers[id(record)] = self

    def _wrap(self, value: Any) -> Any:
        """Wrap a nested record, keeping the child wrapper alive with the parent."""
        if not isinstance(value, (dict, list)):
            return value
        child = self._children.get(id(value))
        if child is None or child._raw is not value:
            child = reactive(value)
            self._children[id(value)] = child
        return child

    def _forget_child(self, value: Any) -> None:
        if isinstance(value, (dict, list)):
            self._children.pop(id(value), None)

    @property
    def raw(self):
        """The backing record. Reads through it are not tracked."""
        return self._raw

    def snapshot(self):
        """Deep plain copy, tracked like a full read."""
        return _snapshot(self)

    def notify(self, key: Any = _MISSING) -> None:
        """Force dependents of key (or of every observed key) to re-run."""
        if key is not _MISSING:
            trigger(self._id, key)
            return
        begin_batch()
        try:
            for observed in observed_keys(self._id):
                trigger(self._id, observed)
        finally:
            end_batch()

    def watch(self, key, callback: Callable[[Any, Any], None]):
        """Call callback(new, old) when key changes. Returns the Watcher."""
        from reactant.watch import watch

        return watch(self, key, callback)

    def bind(self, defs: dict, *, locate, apply=None):
        """Bind descriptors to this container's keys. Returns the Bindings handle."""
        from reactant.binding import bind

        return bind(defs, locate=locate, state=self, apply=apply)

    def cleanup(self) -> None:
        """Dispose every computation subscribed to this container and its computed properties."""
        for comp in self._computed.values():
            comp.dispose()
        self._computed.clear()
        for derivation in dependents_of(self._id):
            derivation.dispose()


class ReactiveDict(Reactive, MutableMapping):
    """A reactive mapping. Keys are readable as items and as attributes.

    Any read (item, attribute, `in`, iteration, len) registers a dependency.
    Any write that changes a value notifies the dependents of that key.
    """

    __slots__ = ()

    def __init__(self, data: dict | None = None) -> None:
        self._attach(data if data is not None else {})

    # --- Read operations (track) ---

    def __getitem__(self, key):
        comp = self._computed.get(key)
        if comp is not None:
            return comp.get()
        track(self._id, key)
        return self._wrap(self._raw[key])

    def __contains__(self, key) -> bool:
        if key in self._computed:
            return True
        track(self._id, key)
        return key in self._raw

    def __iter__(self) -> Iterator:
        track(self._id, STRUCTURE)
        return iter(list(self._raw))

    def __len__(self) -> int:
        track(self._id, STRUCTURE)
        return len(self._raw)

    def __bool__(self) -> bool:
        track(self._id, STRUCTURE)
        return bool(self._raw)

    def get(self, key, default=None):
        comp = self._computed.get(key)
        if comp is not None:
            return comp.get()
        track(self._id, key)
        if key in self._raw:
            return self._wrap(self._raw[key])
        return default

    def peek(self, key, default=None):
        """Read without tracking."""
        return untrack(lambda: self.get(key, default))

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            raise AttributeError(
                f"{type(self).__name__!r} has no key or attribute {name!r}"
            ) from None

    # --- Write operations (notify) ---

    def __setitem__(self, key, value) -> None:
        if key in self._computed:
            raise ReadOnlyError(key)
        value = to_raw(value)
        old = self._raw.get(key, _MISSING)
        self._raw[key] = value
        if old is _MISSING:
            begin_batch()
            try:
                trigger(self._id, key)
                trigger(self._id, STRUCTURE)
            finally:
                end_batch()
        elif not same_value(old, value):
            if old is not value:
                self._forget_child(old)
            trigger(self._id, key)

    def __delitem__(self, key) -> None:
        if key in self._computed:
            raise ReadOnlyError(key)
        old = self._raw.pop(key)
        self._forget_child(old)
        begin_batch()
        try:
            trigger(self._id, key)
            trigger(self._id, STRUCTURE)
        finally:
            end_batch()

    def __setattr__(self, name: str, value) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
        else:
            self[name] = value

    def __delattr__(self, name: str) -> None:
        if name.startswith("_"):
            object.__delattr__(self, name)
            return
        try:
            del self[name]
        except KeyError:
            raise AttributeError(name) from None

    def pop(self, key, *args):
        if key not in self._raw:
            if args:
                return args[0]
            raise KeyError(key)
        value = self._wrap(self._raw[key])
        del self[key]
        return value

    def popitem(self):
        if not self._raw:
            raise KeyError("popitem(): dictionary is empty")
        key = next(reversed(self._raw))
        return key, self.pop(key)

    def setdefault(self, key, default=None):
        if key not in self._raw:
            self[key] = default
        return self._wrap(self._raw[key])

    def update(self, other=(), /, **kwargs) -> None:
        """Batched update: dependents run once after every key is written."""
        begin_batch()
        try:
            items = other.items() if hasattr(other, "items") else other
            for key, value in items:
                self[key] = value
            for key, value in kwargs.items():
                self[key] = value
        finally:
            end_batch()

    def clear(self) -> None:
        begin_batch()
        try:
            for key in list(self._raw):
                del self[key]
        finally:
            end_batch()

    def set(self, updates: dict) -> ReactiveDict:
        """Batched functional update.

        Values may be callables receiving the previous value; keys may be
        dotted paths into nested records.

        Usage:
            state.set({"count": lambda n: n + 1, "user.name": "Ada"})
        """
        begin_batch()
        try:
            for path, value in updates.items():
                parent, key = self._resolve_path(path)
                if callable(value):
                    value = value(untrack(lambda: parent.get(key)))
                parent[key] = value
        finally:
            end_batch()
        return self

    def _resolve_path(self, path):
        if not isinstance(path, str) or "." not in path:
            return self, path
        *parents, key = path.split(".")
        node = self
        for part in parents:
            child = untrack(lambda: node.get(part))
            if not isinstance(child, ReactiveDict):
                node[part] = {}
                child = untrack(lambda: node[part])
            node = child
        return node, key

    def add_computed(self, key, fn: Callable[[ReactiveDict], Any]) -> ReactiveDict:
        """Add a read-only property computed from this container.

        Usage:
            state.add_computed("total", lambda s: s.price * s.qty)
        """
        from reactant.computed import Computed

        old = self._computed.pop(key, None)
        if old is not None:
            old.dispose()
        self._computed[key] = Computed(lambda: fn(self))
        trigger(self._id, key)
        return self

    def __eq__(self, other) -> bool:
        if isinstance(other, Reactive):
            other = other._raw
        track(self._id, STRUCTURE)
        for key in self._raw:
            track(self._id, key)
        return self._raw == other

    __hash__ = None

    def __repr__(self) -> str:
        return f"ReactiveDict({self._raw!r})"


class ReactiveList(Reactive, MutableSequence):
    """A reactive list.

    Index reads track that index. len(), iteration, slices and negative
    indices also track STRUCTURE. Mutations report the indices they change;
    length changes additionally report STRUCTURE.
    """

    __slots__ = ()

    def __init__(self, items: Iterable | None = None) -> None:
        self._attach(items if isinstance(items, list) else list(items or ()))

    def _report(self, start: int, stop: int, structural: bool) -> None:
        begin_batch()
        try:
            if structural:
                trigger(self._id, STRUCTURE)
            for index in range(start, stop):
                trigger(self._id, index)
        finally:
            end_batch()

    def _report_diff(self, before: list) -> None:
        """Report the indices that differ between before and the current contents."""
        after = self._raw
        changed = [
            i for i in range(max(len(before), len(after)))
            if i >= len(before) or i >= len(after) or not same_value(before[i], after[i])
        ]
        if not changed and len(before) == len(after):
            return
        live = {id(v) for v in after}
        for item in before:
            if id(item) not in live:
                self._forget_child(item)
        begin_batch()
        try:
            if len(before) != len(after):
                trigger(self._id, STRUCTURE)
            for index in changed:
                trigger(self._id, index)
        finally:
            end_batch()

    # --- Read operations (track) ---

    def __getitem__(self, index):
        if isinstance(index, slice):
            track(self._id, STRUCTURE)
            positions = range(*index.indices(len(self._raw)))
            for i in positions:
                track(self._id, i)
            return [self._wrap(self._raw[i]) for i in positions]
        if index < 0:
            track(self._id, STRUCTURE)
            index += len(self._raw)
        if not 0 <= index < len(self._raw):
            track(self._id, STRUCTURE)
            raise IndexError("list index out of range")
        track(self._id, index)
        return self._wrap(self._raw[index])

    def __len__(self) -> int:
        track(self._id, STRUCTURE)
        return len(self._raw)

    def __bool__(self) -> bool:
        track(self._id, STRUCTURE)
        return bool(self._raw)

    def __iter__(self) -> Iterator:
        track(self._id, STRUCTURE)
        for index in range(len(self._raw)):
            track(self._id, index)
        return iter([self._wrap(v) for v in self._raw])

    def __contains__(self, item) -> bool:
        item = to_raw(item)
        return any(v is item or v == item for v in map(to_raw, self))

    def peek(self, index, default=None):
        """Read without tracking."""
        try:
            return untrack(lambda: self[index])
        except IndexError:
            return default

    # --- Write operations (notify) ---

    def __setitem__(self, index, value) -> None:
        if isinstance(index, slice):
            before = list(self._raw)
            self._raw[index] = [to_raw(v) for v in value]
            self._report_diff(before)
            return
        if index < 0:
            index += len(self._raw)
        value = to_raw(value)
        old = self._raw[index]
        self._raw[index] = value
        if not same_value(old, value):
            self._forget_child(old)
            trigger(self._id, index)

    def __delitem__(self, index) -> None:
        before = list(self._raw)
        del self._raw[index]
        self._report_diff(before)

    def insert(self, index: int, item) -> None:
        before = list(self._raw)
        self._raw.insert(index, to_raw(item))
        self._report_diff(before)

    def append(self, item) -> None:
        self._raw.append(to_raw(item))
        end = len(self._raw)
        self._report(end - 1, end, structural=True)

    def extend(self, items) -> None:
        start = len(self._raw)
        self._raw.extend(to_raw(v) for v in items)
        if len(self._raw) != start:
            self._report(start, len(self._raw), structural=True)

    def __iadd__(self, items):
        self.extend(items)
        return self

    def pop(self, index: int = -1):
        value = self._wrap(self._raw[index])
        del self[index]
        return value

    def remove(self, item) -> None:
        item = to_raw(item)
        for index, value in enumerate(self._raw):
            if value is item or value == item:
                del self[index]
                return
        raise ValueError(f"{item!r} not in list")

    def clear(self) -> None:
        if not self._raw:
            return
        before = list(self._raw)
        self._raw.clear()
        self._report_diff(before)

    def reverse(self) -> None:
        before = list(self._raw)
        self._raw.reverse()
        self._report_diff(before)

    def sort(self, *, key=None, reverse: bool = False) -> None:
        before = list(self._raw)
        self._raw.sort(key=key, reverse=reverse)
        self._report_diff(before)

    def __eq__(self, other) -> bool:
        if isinstance(other, Reactive):
            other = other._raw
        return [to_raw(v) for v in self] == other

    __hash__ = None

    def __repr__(self) -> str:
        return f"ReactiveList({self._raw!r})"


# Alias: state({...}) reads well at call sites.
state = reactive
