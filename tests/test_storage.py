"""Tests for storage adapters and auto_save."""

import json
import logging

import pytest

from reactant import (
    JsonFileStorage,
    MemoryStorage,
    NamespacedStorage,
    auto_save,
    reactive,
    transaction,
)


class TestAdapters:
    def test_memory_storage_copies(self):
        storage = MemoryStorage()
        value = {"a": [1]}
        storage.persist("k", value)
        value["a"].append(2)
        assert storage.retrieve("k") == {"a": [1]}
        assert storage.retrieve("missing") is None
        assert storage.keys() == ["k"]
        storage.remove_key("k")
        assert storage.keys() == []

    def test_json_file_storage(self, tmp_path):
        path = tmp_path / "state.json"
        storage = JsonFileStorage(path)
        assert storage.retrieve("k") is None
        storage.persist("k", {"n": 1})
        storage.persist("j", [1, 2])
        assert json.loads(path.read_text()) == {"k": {"n": 1}, "j": [1, 2]}
        assert JsonFileStorage(path).retrieve("k") == {"n": 1}
        storage.remove_key("k")
        assert storage.keys() == ["j"]

    def test_json_file_storage_removes_null_value(self, tmp_path):
        path = tmp_path / "state.json"
        storage = JsonFileStorage(path)
        storage.persist("empty", None)
        storage.persist("j", 1)
        assert storage.keys() == ["empty", "j"]
        storage.remove_key("empty")
        assert storage.keys() == ["j"]
        assert json.loads(path.read_text()) == {"j": 1}

    def test_namespaced_storage(self):
        inner = MemoryStorage()
        storage = NamespacedStorage(inner, "app")
        storage.persist("prefs", 1)
        inner.persist("other", 2)
        assert inner.retrieve("app:prefs") == 1
        assert storage.keys() == ["prefs"]


class TestAutoSave:
    def test_saves_on_change(self):
        storage = MemoryStorage()
        prefs = reactive({"theme": "dark"})
        auto_save(prefs, "prefs", storage=storage)
        assert storage.retrieve("prefs") == {"theme": "dark"}
        prefs.theme = "light"
        assert storage.retrieve("prefs") == {"theme": "light"}

    def test_nested_writes_save(self):
        storage = MemoryStorage()
        s = reactive({"todos": [{"done": False}]})
        auto_save(s, "todos", storage=storage)
        s.todos[0].done = True
        assert storage.retrieve("todos") == {"todos": [{"done": True}]}

    def test_batched_writes_save_once(self):
        saves = []
        s = reactive({"a": 0, "b": 0})
        auto_save(s, "s", on_save=lambda v: saves.append(v) or v)
        saves.clear()
        with transaction():
            s.a = 1
            s.b = 2
        assert saves == [{"a": 1, "b": 2}]

    def test_auto_load(self):
        storage = MemoryStorage()
        storage.persist("prefs", {"theme": "light", "size": 2})
        prefs = reactive({"theme": "dark"})
        auto_save(prefs, "prefs", storage=storage)
        assert prefs.raw == {"theme": "light", "size": 2}

    def test_load_list(self):
        storage = MemoryStorage()
        storage.persist("items", [3, 4])
        items = reactive([1])
        auto_save(items, "items", storage=storage)
        assert items.raw == [3, 4]

    def test_namespace(self):
        storage = MemoryStorage()
        prefs = reactive({"theme": "dark"})
        auto_save(prefs, "prefs", storage=storage, namespace="app")
        assert storage.keys() == ["app:prefs"]

    def test_disabled_until_started(self):
        storage = MemoryStorage()
        prefs = reactive({"theme": "dark"})
        saver = auto_save(prefs, "prefs", storage=storage, enabled=False)
        assert not saver.active
        prefs.theme = "light"
        assert not saver.exists()
        saver.start()
        assert saver.active
        assert storage.retrieve("prefs") == {"theme": "light"}

    def test_stop_and_dispose(self):
        storage = MemoryStorage()
        prefs = reactive({"theme": "dark"})
        saver = auto_save(prefs, "prefs", storage=storage)
        saver.stop()
        prefs.theme = "light"
        assert storage.retrieve("prefs") == {"theme": "dark"}
        saver.start()
        saver.dispose()
        prefs.theme = "blue"
        assert storage.retrieve("prefs") == {"theme": "light"}
        assert repr(saver) == "AutoSave('prefs', stopped)"

    def test_manual_save_load_clear(self):
        storage = MemoryStorage()
        prefs = reactive({"theme": "dark"})
        saver = auto_save(prefs, "prefs", storage=storage, enabled=False, auto_load=False)
        assert not saver.load()
        assert saver.save()
        assert saver.exists()
        storage.persist("prefs", {"theme": "green"})
        assert saver.load()
        assert prefs.theme == "green"
        saver.clear()
        assert not saver.exists()
        assert prefs.theme == "green"

    def test_on_load_transforms(self):
        storage = MemoryStorage()
        storage.persist("s", {"v": 1})
        s = reactive({"v": 0})
        auto_save(s, "s", storage=storage, on_load=lambda v: {"v": v["v"] * 10})
        assert s.v == 10

    def test_save_errors_are_routed(self, caplog):
        class _Broken(MemoryStorage):
            def persist(self, key, value):
                raise OSError("disk full")

        errors = []
        s = reactive({"v": 0})
        with caplog.at_level(logging.ERROR, logger="reactant.storage"):
            auto_save(s, "s", storage=_Broken(), on_error=lambda exc, op: errors.append(op))
            s.v = 1
        assert errors == ["save", "save"]
        assert "Save failed for key 's'" in caplog.text

    def test_load_type_mismatch(self):
        storage = MemoryStorage()
        storage.persist("s", [1, 2])
        errors = []
        s = reactive({"v": 0})
        auto_save(s, "s", storage=storage, on_error=lambda exc, op: errors.append((type(exc), op)))
        assert errors == [(TypeError, "load")]
        assert s.raw == {"v": 0}

    def test_empty_key(self):
        with pytest.raises(ValueError):
            auto_save(reactive({}), "")
