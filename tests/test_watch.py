"""Tests for watch, safe_watch and reaction."""

import logging

import pytest

from reactant import reaction, reactive, safe_watch, transaction, watch


class TestWatch:
    def test_old_and_new_values(self):
        s = reactive({"count": 1})
        seen = []
        watch(s, "count", lambda new, old: seen.append((new, old)))
        s.count = 5
        assert seen == [(5, 1)]

    def test_does_not_fire_on_creation(self):
        s = reactive({"count": 1})
        seen = []
        watch(s, "count", lambda new, old: seen.append((new, old)))
        assert seen == []

    def test_only_watched_key(self):
        s = reactive({"a": 1, "b": 1})
        seen = []
        watch(s, "a", lambda new, old: seen.append(new))
        s.b = 2
        assert seen == []

    def test_callback_reads_are_untracked(self):
        s = reactive({"a": 1, "b": 1})
        seen = []
        watch(s, "a", lambda new, old: seen.append((new, s.b)))
        s.a = 2
        s.b = 3
        assert seen == [(2, 1)]

    def test_batched_writes_report_final_value(self):
        s = reactive({"a": 1})
        seen = []
        watch(s, "a", lambda new, old: seen.append((new, old)))
        with transaction():
            s.a = 2
            s.a = 3
        assert seen == [(3, 1)]

    def test_write_back_to_original_is_silent(self):
        s = reactive({"a": 1})
        seen = []
        watch(s, "a", lambda new, old: seen.append(new))
        with transaction():
            s.a = 2
            s.a = 1
        assert seen == []

    def test_missing_key_reads_none(self):
        s = reactive({})
        seen = []
        watch(s, "name", lambda new, old: seen.append((new, old)))
        s.name = "Ada"
        assert seen == [("Ada", None)]

    def test_nested_record_replacement(self):
        s = reactive({"user": {"name": "Ann"}})
        seen = []
        watch(s, "user", lambda new, old: seen.append(new.raw))
        s.user.name = "Bob"  # same record, key not written
        assert seen == []
        s.user = {"name": "Cy"}
        assert seen == [{"name": "Cy"}]

    def test_container_method(self):
        s = reactive({"n": 0})
        seen = []
        s.watch("n", lambda new, old: seen.append(new))
        s.n = 1
        assert seen == [1]

    def test_list_index(self):
        lst = reactive(["a", "b"])
        seen = []
        watch(lst, 0, lambda new, old: seen.append((new, old)))
        lst[0] = "z"
        assert seen == [("z", "a")]

    def test_getter_source(self):
        s = reactive({"first": "Ada", "last": "L"})
        seen = []
        watch(s, lambda: f"{s.first} {s.last}", lambda new, old: seen.append((new, old)))
        s.last = "Lovelace"
        assert seen == [("Ada Lovelace", "Ada L")]

    def test_dispose(self):
        s = reactive({"n": 0})
        seen = []
        w = watch(s, "n", lambda new, old: seen.append(new))
        s.n = 1
        w.dispose()
        s.n = 2
        assert seen == [1]
        assert w.disposed

    def test_value(self):
        s = reactive({"n": 0})
        w = watch(s, "n", lambda new, old: None)
        assert w.value == 0
        s.n = 4
        assert w.value == 4

    def test_callback_may_write_its_own_key(self):
        s = reactive({"n": 0})
        seen = []

        def _clamp(new, old):
            seen.append(new)
            if new > 10:
                s.n = 10

        watch(s, "n", _clamp)
        s.n = 50
        assert seen == [50, 10]
        assert s.n == 10

    def test_callback_error_propagates(self):
        s = reactive({"n": 0})

        def _fail(new, old):
            raise ValueError("boom")

        watch(s, "n", _fail)
        with pytest.raises(ValueError, match="boom"):
            s.n = 1


class TestSafeWatch:
    def test_routes_errors_and_keeps_watching(self):
        s = reactive({"n": 0})
        errors = []
        seen = []

        def _cb(new, old):
            seen.append((new, old))
            if new == 1:
                raise ValueError("boom")

        safe_watch(s, "n", _cb, on_error=errors.append)
        s.n = 1
        s.n = 2
        assert len(errors) == 1
        assert seen == [(1, 0), (2, 1)]

    def test_default_handler_logs(self, caplog):
        s = reactive({"n": 0})

        def _cb(new, old):
            raise RuntimeError("watch failed")

        safe_watch(s, "n", _cb)
        with caplog.at_level(logging.ERROR, logger="reactant.watch"):
            s.n = 1
        assert "Error in safe watcher" in caplog.text

    def test_failing_handler_is_called_once_and_propagates(self):
        s = reactive({"n": 0})
        calls = []

        def _cb(new, old):
            raise ValueError("boom")

        def _handler(exc):
            calls.append(exc)
            raise RuntimeError("handler failed")

        safe_watch(s, "n", _cb, on_error=_handler)
        with pytest.raises(RuntimeError, match="handler failed"):
            s.n = 1
        assert len(calls) == 1
        assert isinstance(calls[0], ValueError)

    def test_getter_error_is_routed_once(self):
        s = reactive({"n": 1})
        errors = []
        seen = []
        safe_watch(s, lambda: 10 // s.n, lambda new, old: seen.append(new), on_error=errors.append)
        s.n = 0
        assert len(errors) == 1
        assert isinstance(errors[0], ZeroDivisionError)
        assert seen == []
        s.n = 5
        assert seen == [2]


class TestReaction:
    def test_no_initial_effect(self):
        """Without fire_immediately, effect doesn't run on setup."""
        s = reactive({"v": "a"})
        effects = []
        reaction(lambda: s.v, lambda v: effects.append(v))
        assert effects == []

    def test_fires_on_change(self):
        s = reactive({"v": "a"})
        effects = []
        reaction(lambda: s.v, lambda v: effects.append(v))
        s.v = "b"
        assert effects == ["b"]

    def test_fire_immediately(self):
        s = reactive({"v": "a"})
        effects = []
        reaction(lambda: s.v, lambda v: effects.append(v), fire_immediately=True)
        assert effects == ["a"]

    def test_dedup_effect(self):
        """Effect only fires when data_fn result actually changes."""
        s = reactive({"n": 1})
        effects = []
        # data_fn always returns "even" or "odd"
        reaction(
            lambda: "even" if s.n % 2 == 0 else "odd",
            lambda v: effects.append(v),
        )
        s.n = 3  # still odd
        assert effects == []  # data_fn returned same "odd"
        s.n = 4  # now even
        assert effects == ["even"]

    def test_dispose(self):
        s = reactive({"n": 1})
        effects = []
        r = reaction(lambda: s.n, lambda v: effects.append(v))
        s.n = 2
        assert effects == [2]
        r.dispose()
        s.n = 3
        assert effects == [2]  # no more effects
