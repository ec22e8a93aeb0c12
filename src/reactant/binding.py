"""Binding layer — effects that push container data into external targets.

bind(defs, locate=...) creates one Effect per (descriptor, property) pair.
Each run locates the target(s) for its descriptor, computes the value under
tracking and applies it through a small set of property writers.

When locate() finds nothing the value is still computed, so the effect keeps
its subscriptions and retries on the next relevant write. There is no timer.

Element and Document are a headless target model with a selector lookup
(`#id`, `.class`, tag name), used where no GUI toolkit owns the targets.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from reactant.effect import Effect, effect

logger = logging.getLogger("reactant.binding")

Locator = Callable[[Any], Any]
Applier = Callable[[Any, "str | None", Any], None]


# ─── Property writers ────────────────────────────────────────────────────────

def _text_of(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def write_text(target: Any, value: Any) -> None:
    target.text = _text_of(value)


def write_style(target: Any, value: Any) -> None:
    if value is None:
        target.style.clear()
        return
    target.style.update(value)


def write_classes(target: Any, value: Any) -> None:
    if value is None:
        target.classes = []
    elif isinstance(value, str):
        target.classes = value.split()
    else:
        target.classes = [str(c) for c in value if c]


def write_dataset(target: Any, value: Any) -> None:
    if value is None:
        target.dataset.clear()
        return
    target.dataset.update({k: str(v) for k, v in value.items()})


def write_attribute(target: Any, prop: str, value: Any) -> None:
    """Set an existing Python attribute, else a string entry in target.attributes."""
    if hasattr(target, prop) and prop != "attributes":
        setattr(target, prop, "" if value is None else value)
    elif value is None:
        target.attributes.pop(prop, None)
    else:
        target.attributes[prop] = str(value)


WRITERS: dict[str, Callable[[Any, Any], None]] = {
    "text": write_text,
    "style": write_style,
    "class": write_classes,
    "classes": write_classes,
    "dataset": write_dataset,
}


def apply_value(target: Any, prop: str | None, value: Any) -> None:
    """Apply value to target: text content when prop is None, else a named property."""
    if prop is None:
        if isinstance(value, dict):
            for key, sub in value.items():
                apply_value(target, key, sub)
        else:
            write_text(target, value)
        return
    writer = WRITERS.get(prop)
    if writer is not None:
        writer(target, value)
    else:
        write_attribute(target, prop, value)


# ─── Headless targets ────────────────────────────────────────────────────────

@dataclass(eq=False)
class Element:
    """A minimal element: text, attributes, style, classes and dataset."""

    tag: str = "div"
    id: str | None = None
    text: str = ""
    classes: list[str] = field(default_factory=list)
    attributes: dict[str, str] = field(default_factory=dict)
    style: dict[str, Any] = field(default_factory=dict)
    dataset: dict[str, str] = field(default_factory=dict)

    def matches(self, selector: str) -> bool:
        if selector.startswith("#"):
            return self.id == selector[1:]
        if selector.startswith("."):
            return selector[1:] in self.classes
        return self.tag == selector


class Document:
    """A flat collection of Elements with selector lookup.

    Usage:
        doc = Document()
        doc.add(Element(id="count"))
        bind({"#count": lambda: state.count}, locate=doc.locate)
    """

    def __init__(self, elements: Iterable[Element] = ()) -> None:
        self._elements: list[Element] = list(elements)

    def add(self, element: Element) -> Element:
        self._elements.append(element)
        return element

    def remove(self, element: Element) -> None:
        self._elements.remove(element)

    def query(self, selector: str) -> list[Element]:
        return [el for el in self._elements if el.matches(selector)]

    def locate(self, selector: str) -> Element | list[Element] | None:
        """`#id` resolves to one element; other selectors to every match."""
        found = self.query(selector)
        if not found:
            return None
        if selector.startswith("#"):
            return found[0]
        return found


# ─── Bindings ────────────────────────────────────────────────────────────────

class Bindings:
    """Disposable handle for the effects created by bind()."""

    __slots__ = ("_effects", "_disposed")

    def __init__(self, effects: list[Effect]) -> None:
        self._effects = effects
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def effects(self) -> list[Effect]:
        return list(self._effects)

    def __len__(self) -> int:
        return len(self._effects)

    def dispose(self) -> None:
        """Dispose every underlying effect."""
        self._disposed = True
        for e in self._effects:
            e.dispose()

    def __call__(self) -> None:
        self.dispose()


def _as_targets(found: Any) -> list:
    if found is None:
        return []
    if isinstance(found, (list, tuple)):
        return [t for t in found if t is not None]
    return [found]


def _read_path(state: Any, path: str) -> Any:
    value = state
    for part in path.split("."):
        if value is None:
            return None
        value = value.get(part) if hasattr(value, "get") else getattr(value, part, None)
    return value


def _producer(source: Any, state: Any) -> Callable[[], Any]:
    if callable(source):
        return source
    if isinstance(source, str):
        if state is None:
            raise TypeError(f"Binding to key path {source!r} needs a state container")
        return lambda: _read_path(state, source)
    raise TypeError(f"Unsupported binding: {source!r}")


def _binding_effect(
    descriptor: Any, prop: str | None, produce: Callable[[], Any], locate: Locator, apply: Applier
) -> Effect:
    def _run() -> None:
        targets = _as_targets(locate(descriptor))
        value = produce()
        if not targets:
            logger.debug("No target for %r; will retry on next change", descriptor)
            return
        for target in targets:
            apply(target, prop, value)

    _run.__name__ = f"bind[{descriptor}]"
    return effect(_run)


def bind(
    defs: dict,
    *,
    locate: Locator,
    apply: Applier | None = None,
    state: Any = None,
) -> Bindings:
    """Create one effect per binding entry. Returns a Bindings handle.

    defs maps a target descriptor to one of:
        - a function: its result becomes the target's text content
        - a key path string (needs state): state's value becomes the text
        - a dict of {property: function or key path}

    Usage:
        handle = bind(
            {
                "#count": lambda: state.count,
                "#badge": {"class": lambda: ["badge", "hot" if state.count > 9 else ""]},
                ".name": "user.name",
            },
            locate=doc.locate,
            state=state,
        )
        handle.dispose()
    """
    apply = apply or apply_value
    created: list[Effect] = []
    for descriptor, source in defs.items():
        if isinstance(source, dict):
            for prop, prop_source in source.items():
                created.append(
                    _binding_effect(descriptor, prop, _producer(prop_source, state), locate, apply)
                )
        else:
            created.append(_binding_effect(descriptor, None, _producer(source, state), locate, apply))
    return Bindings(created)
