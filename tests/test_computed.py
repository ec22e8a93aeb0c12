"""Tests for Computed values."""

import pytest

from reactant import Computed, ReactiveCycleError, computed, effect, reactive


class TestComputed:
    def test_lazy_eval(self):
        call_count = 0
        s = reactive({"n": 5})

        def fn():
            nonlocal call_count
            call_count += 1
            return s.n * 2

        c = Computed(fn)
        assert call_count == 0  # not yet evaluated
        assert c.get() == 10
        assert call_count == 1

    def test_caches_until_dirty(self):
        call_count = 0
        s = reactive({"n": 5})

        def fn():
            nonlocal call_count
            call_count += 1
            return s.n * 2

        c = Computed(fn)
        c.get()
        c.value
        assert call_count == 1  # cached, no re-eval

    def test_write_does_not_recompute(self):
        """Pull-based: a write only marks dirty."""
        call_count = 0
        s = reactive({"n": 5})

        def fn():
            nonlocal call_count
            call_count += 1
            return s.n

        c = Computed(fn)
        c.get()
        s.n = 6
        s.n = 7
        assert c.dirty
        assert call_count == 1
        assert c.get() == 7
        assert call_count == 2

    def test_invalidation(self):
        s = reactive({"n": 5})
        c = Computed(lambda: s.n * 2)
        assert c.get() == 10
        s.n = 10
        assert c.get() == 20

    def test_dependency_tracking(self):
        """Computed tracks dependencies dynamically."""
        s = reactive({"flag": True, "a": 1, "b": 2})

        c = Computed(lambda: s.a if s.flag else s.b)
        assert c.get() == 1

        s.flag = False
        assert c.get() == 2  # now depends on b, not a
        s.a = 100
        assert not c.dirty

    def test_chained_computed(self):
        s = reactive({"n": 3})
        doubled = Computed(lambda: s.n * 2)
        quadrupled = Computed(lambda: doubled.get() * 2)
        assert quadrupled.get() == 12
        s.n = 5
        assert quadrupled.get() == 20

    def test_dispose_keeps_last_value(self):
        s = reactive({"n": 5})
        c = Computed(lambda: s.n * 2)
        c.get()
        c.dispose()
        s.n = 10
        assert c.disposed
        assert c.get() == 10  # inert: last cached value

    def test_dispose_before_first_read(self):
        c = Computed(lambda: 1)
        c.dispose()
        assert c.get() is None

    def test_propagates_to_effects(self):
        """Computed invalidation propagates to downstream effects."""
        s = reactive({"n": 5})
        c = Computed(lambda: s.n * 2)
        log = []
        effect(lambda: log.append(c.get()))
        assert log == [10]
        s.n = 10
        assert log == [10, 20]

    def test_self_read_raises(self):
        holder = {}
        c = Computed(lambda: holder["c"].get() + 1)
        holder["c"] = c
        with pytest.raises(ReactiveCycleError, match="reads its own value"):
            c.get()

    def test_error_leaves_dirty(self):
        s = reactive({"n": 0})
        c = Computed(lambda: 1 / s.n)
        with pytest.raises(ZeroDivisionError):
            c.get()
        assert c.dirty
        s.n = 2
        assert c.get() == 0.5

    def test_repr(self):
        def total():
            return 3

        c = Computed(total)
        assert repr(c) == "Computed(total, dirty)"
        c.get()
        assert repr(c) == "Computed(total, cached=3)"
        c.dispose()
        assert "disposed" in repr(c)


class TestComputedDecorator:
    def test_decorator_factory(self):
        s = reactive({"n": 7})

        @computed
        def doubled():
            return s.n * 2

        assert doubled.get() == 14
        s.n = 3
        assert doubled.get() == 6
