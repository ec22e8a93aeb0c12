"""Store — a container with getters, actions and an effect lifecycle.

A Store wraps one reactive container, adds computed getters and batched
actions, and owns the disposers of every effect or watcher registered
through it. ref() and collection() are small containers of fixed shape.
"""

from __future__ import annotations

import functools
from typing import Any, Callable

from reactant.action import action, transaction
from reactant.effect import effect
from reactant.reactive import ReactiveDict, reactive, to_raw
from reactant.watch import watch


class Store:
    """Reactive container with getters, batched actions and disposers.

    Usage:
        cart = Store(
            {"items": [], "tax": 0.2},
            getters={"total": lambda s: sum(i["price"] for i in s["items"]) * (1 + s.tax)},
            actions={"add": lambda s, item: s["items"].append(item)},
        )
        cart.add({"price": 10})
        cart.total  # 12.0
    """

    def __init__(
        self,
        initial: dict,
        *,
        getters: dict[str, Callable[[ReactiveDict], Any]] | None = None,
        actions: dict[str, Callable[..., Any]] | None = None,
    ) -> None:
        self.state: ReactiveDict = reactive(dict(initial))
        self._disposers: list = []
        self._actions: dict[str, Callable[..., Any]] = {}
        for key, fn in (getters or {}).items():
            self.state.add_computed(key, fn)
        for name, fn in (actions or {}).items():
            self._actions[name] = action(functools.partial(fn, self.state))

    def get(self, key: str) -> Any:
        return self.state.get(key)

    def set(self, key: str, value: Any) -> None:
        self.state[key] = value

    def update(self, values: dict) -> None:
        self.state.update(values)

    def effect(self, fn: Callable[[], None]):
        """Register an effect disposed together with the store."""
        e = effect(fn)
        self._disposers.append(e)
        return e

    def watch(self, key, callback: Callable[[Any, Any], None]):
        """Register a watcher on the store's state, disposed together with the store."""
        w = watch(self.state, key, callback)
        self._disposers.append(w)
        return w

    def dispose(self) -> None:
        for d in self._disposers:
            d.dispose()
        self._disposers.clear()

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)
        fn = self._actions.get(name)
        if fn is not None:
            return fn
        return getattr(self.state, name)


def ref(value: Any = None) -> ReactiveDict:
    """A single reactive value, read and written as .value."""
    return reactive({"value": value})


class Collection(ReactiveDict):
    """Container holding a reactive list under "items", with helpers."""

    __slots__ = ()

    def add(self, item: Any) -> None:
        self.peek("items").append(item)

    def _index(self, predicate) -> int:
        items = self.peek("items")
        for index, item in enumerate(items.raw):
            if callable(predicate) and predicate(items.peek(index)):
                return index
            if not callable(predicate) and (item is to_raw(predicate) or item == predicate):
                return index
        return -1

    def remove(self, predicate) -> bool:
        """Remove the first item equal to predicate, or the first it accepts."""
        index = self._index(predicate)
        if index == -1:
            return False
        del self.peek("items")[index]
        return True

    def update_where(self, predicate, updates: dict) -> bool:
        """Merge updates into the first matching item (which must be a dict)."""
        index = self._index(predicate)
        if index == -1:
            return False
        self.peek("items").peek(index).update(updates)
        return True

    def clear_items(self) -> None:
        with transaction():
            self.peek("items").clear()


def collection(items: list | None = None) -> Collection:
    """A reactive {"items": [...]} container with add/remove/update_where helpers."""
    return Collection({"items": list(items or [])})
