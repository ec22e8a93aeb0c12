"""Storage integration — keep a container in sync with a key/value store.

auto_save(container, key, storage=...) loads the stored value into the
container, then runs an effect that snapshots the whole container (so any
nested write re-saves) and persists the snapshot. The engine only calls the
adapter's persist/retrieve/remove_key; how values are encoded is up to it.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Protocol

from reactant.action import transaction
from reactant.effect import Effect, effect
from reactant.reactive import ReactiveDict, ReactiveList, to_raw

logger = logging.getLogger("reactant.storage")


class StorageAdapter(Protocol):
    def persist(self, key: str, value: Any) -> None: ...

    def retrieve(self, key: str) -> Any: ...

    def remove_key(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


class MemoryStorage:
    """In-process storage. Values are deep-copied in and out."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def persist(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def retrieve(self, key: str) -> Any:
        if key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    def remove_key(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStorage:
    """All keys in one JSON document on disk, rewritten on every change."""

    def __init__(self, path: str | os.PathLike) -> None:
        self._path = Path(path)

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        with self._path.open(encoding="utf-8") as fh:
            return json.load(fh)

    def _write(self, data: dict[str, Any]) -> None:
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as fh:
            json.dump(data, fh)
        tmp.replace(self._path)

    def persist(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def retrieve(self, key: str) -> Any:
        return self._read().get(key)

    def remove_key(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def keys(self) -> list[str]:
        return list(self._read())


class NamespacedStorage:
    """Prefixes every key with "namespace:" on top of another adapter."""

    def __init__(self, storage: StorageAdapter, namespace: str) -> None:
        self._storage = storage
        self._prefix = f"{namespace}:" if namespace else ""

    def _key(self, key: str) -> str:
        return self._prefix + key

    def persist(self, key: str, value: Any) -> None:
        self._storage.persist(self._key(key), value)

    def retrieve(self, key: str) -> Any:
        return self._storage.retrieve(self._key(key))

    def remove_key(self, key: str) -> None:
        self._storage.remove_key(self._key(key))

    def keys(self) -> list[str]:
        n = len(self._prefix)
        return [k[n:] for k in self._storage.keys() if k.startswith(self._prefix)]


def _assign(container: Any, value: Any) -> None:
    """Write a loaded plain value into a container, in one batch."""
    if isinstance(container, ReactiveDict) and isinstance(value, dict):
        container.update(value)
    elif isinstance(container, ReactiveList) and isinstance(value, list):
        container[:] = value
    else:
        raise TypeError(
            f"Cannot load {type(value).__name__} into {type(container).__name__}"
        )


class AutoSave:
    """Handle for one container persisted under one key."""

    def __init__(
        self,
        container: ReactiveDict | ReactiveList,
        key: str,
        storage: StorageAdapter,
        *,
        on_save: Callable[[Any], Any] | None = None,
        on_load: Callable[[Any], Any] | None = None,
        on_error: Callable[[BaseException, str], None] | None = None,
    ) -> None:
        self._container = container
        self._key = key
        self._storage = storage
        self._on_save = on_save
        self._on_load = on_load
        self._on_error = on_error
        self._effect: Effect | None = None
        self._loading = False

    @property
    def active(self) -> bool:
        return self._effect is not None

    def _fail(self, exc: BaseException, operation: str) -> None:
        logger.error("%s failed for key %r", operation.capitalize(), self._key, exc_info=exc)
        if self._on_error is not None:
            self._on_error(exc, operation)

    def _persist(self, value: Any) -> bool:
        try:
            if self._on_save is not None:
                value = self._on_save(value)
            self._storage.persist(self._key, value)
        except Exception as exc:
            self._fail(exc, "save")
            return False
        return True

    def _auto(self) -> None:
        snapshot = self._container.snapshot()
        if self._loading:
            return
        self._persist(snapshot)

    def save(self) -> bool:
        """Persist the current contents now."""
        return self._persist(copy.deepcopy(to_raw(self._container)))

    def load(self) -> bool:
        """Replace the container's contents from storage. False when nothing is stored."""
        try:
            loaded = self._storage.retrieve(self._key)
            if loaded is None:
                return False
            if self._on_load is not None:
                loaded = self._on_load(loaded)
            self._loading = True
            try:
                with transaction():
                    _assign(self._container, loaded)
            finally:
                self._loading = False
        except Exception as exc:
            self._fail(exc, "load")
            return False
        return True

    def clear(self) -> None:
        """Remove the stored value. The container is untouched."""
        self._storage.remove_key(self._key)

    def exists(self) -> bool:
        return self._storage.retrieve(self._key) is not None

    def start(self) -> AutoSave:
        if self._effect is None:
            self._effect = effect(self._auto)
        return self

    def stop(self) -> AutoSave:
        if self._effect is not None:
            self._effect.dispose()
            self._effect = None
        return self

    def dispose(self) -> None:
        self.stop()

    def __repr__(self) -> str:
        return f"AutoSave({self._key!r}, {'active' if self.active else 'stopped'})"


def auto_save(
    container: ReactiveDict | ReactiveList,
    key: str,
    *,
    storage: StorageAdapter | None = None,
    namespace: str = "",
    auto_load: bool = True,
    enabled: bool = True,
    on_save: Callable[[Any], Any] | None = None,
    on_load: Callable[[Any], Any] | None = None,
    on_error: Callable[[BaseException, str], None] | None = None,
) -> AutoSave:
    """Persist container under key on every change.

    Usage:
        prefs = reactive({"theme": "dark"})
        saver = auto_save(prefs, "prefs", storage=MemoryStorage(), namespace="app")
        prefs.theme = "light"   # persisted as "app:prefs"
        saver.dispose()
    """
    if not isinstance(key, str) or not key:
        raise ValueError("auto_save key must be a non-empty string")
    storage = storage if storage is not None else MemoryStorage()
    if namespace:
        storage = NamespacedStorage(storage, namespace)
    saver = AutoSave(
        container, key, storage, on_save=on_save, on_load=on_load, on_error=on_error
    )
    if auto_load:
        saver.load()
    if enabled:
        saver.start()
    return saver
