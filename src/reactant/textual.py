"""Textual integration for reactant. Opt-in — requires textual.

Binds containers to Textual widgets: descriptors are CSS selectors resolved
with app.query(), text goes through Widget.update(), and effects are guarded
so they skip while the app is not running or while its widget tree is being
replaced inside pause(app). Runs from a background thread are marshalled
with app.call_from_thread.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Callable

from textual.css.query import NoMatches

from reactant import binding as _binding
from reactant.effect import effect as _effect
from reactant.watch import reaction as _reaction

# Module-owned pause state — keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded effects during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def _guard(app, fn: Callable[..., None]) -> Callable[..., None]:
    """Skip when unsafe, swallow NoMatches, marshal cross-thread calls."""
    main = threading.get_ident()

    def _safe(*args):
        try:
            fn(*args)
        except NoMatches:
            pass

    def _guarded(*args):
        if not is_safe(app):
            return
        if threading.get_ident() != main:
            app.call_from_thread(_safe, *args)
        else:
            _safe(*args)

    return _guarded


def effect(app, fn: Callable[[], None]):
    """effect() that safely bridges to Textual widgets."""
    return _effect(_guard(app, fn))


def reaction(app, data_fn, effect_fn, *, fire_immediately=False):
    """reaction() that safely bridges to Textual widgets."""
    return _reaction(data_fn, _guard(app, effect_fn), fire_immediately=fire_immediately)


def locator(app) -> Callable[[str], list | None]:
    """A locate() for bind(): every widget matching the selector, or None."""

    def _locate(selector: str):
        if not is_safe(app):
            return None
        found = list(app.query(selector))
        return found or None

    return _locate


def apply_to_widget(widget: Any, prop: str | None, value: Any) -> None:
    """Property writers for Textual widgets.

    None -> widget.update(text); "styles" -> assign each style attribute;
    "classes" -> widget.set_classes(); anything else -> setattr.
    """
    if prop is None:
        widget.update(_binding._text_of(value))
    elif prop == "styles":
        for name, style in (value or {}).items():
            setattr(widget.styles, name, style)
    elif prop in ("class", "classes"):
        if isinstance(value, str):
            value = value.split()
        widget.set_classes(" ".join(str(c) for c in (value or ()) if c))
    else:
        setattr(widget, prop, value)


def bind(app, defs: dict, *, state=None):
    """bind() against the app's widget tree. Returns the Bindings handle.

    Usage:
        stx.bind(app, {"#count": lambda: state.count, ".title": {"classes": lambda: ["big"]}})
    """
    return _binding.bind(
        defs, locate=locator(app), apply=_guard(app, apply_to_widget), state=state
    )
