"""reactant: fine-grained reactive state for Python."""

from importlib.metadata import version as _version

__version__ = _version("reactant")

from reactant._tracking import flush, get_pending_count, set_scheduler
from reactant.config import Settings, configure, get_settings, reset_settings
from reactant.errors import (
    NoOperationError,
    OperationCancelled,
    ReactantError,
    ReactiveCycleError,
    ReadOnlyError,
)
from reactant.reactive import (
    STRUCTURE,
    ReactiveDict,
    ReactiveList,
    is_reactive,
    reactive,
    same_value,
    state,
    to_raw,
)
from reactant.computed import Computed, computed
from reactant.effect import AsyncEffect, Effect, async_effect, effect, effects, safe_effect
from reactant.watch import Watcher, reaction, safe_watch, watch
from reactant.action import action, batch, pause, resume, transaction, untrack
from reactant.cancel import CancelToken
from reactant.async_state import AsyncOperation, AsyncResult, async_state
from reactant.binding import Bindings, Document, Element, apply_value, bind
from reactant.storage import (
    AutoSave,
    JsonFileStorage,
    MemoryStorage,
    NamespacedStorage,
    auto_save,
)
from reactant.store import Collection, Store, collection, ref
from reactant.cleanup import Collector, collector, scope
# textual NOT auto-imported — opt-in only

__all__ = [
    "reactive",
    "state",
    "ReactiveDict",
    "ReactiveList",
    "STRUCTURE",
    "is_reactive",
    "to_raw",
    "same_value",
    "Computed",
    "computed",
    "Effect",
    "effect",
    "effects",
    "safe_effect",
    "AsyncEffect",
    "async_effect",
    "Watcher",
    "watch",
    "safe_watch",
    "reaction",
    "action",
    "batch",
    "transaction",
    "pause",
    "resume",
    "untrack",
    "flush",
    "set_scheduler",
    "get_pending_count",
    "Settings",
    "configure",
    "get_settings",
    "reset_settings",
    "ReactantError",
    "ReactiveCycleError",
    "ReadOnlyError",
    "NoOperationError",
    "OperationCancelled",
    "CancelToken",
    "AsyncOperation",
    "AsyncResult",
    "async_state",
    "bind",
    "Bindings",
    "apply_value",
    "Element",
    "Document",
    "auto_save",
    "AutoSave",
    "MemoryStorage",
    "JsonFileStorage",
    "NamespacedStorage",
    "Store",
    "ref",
    "collection",
    "Collection",
    "Collector",
    "collector",
    "scope",
]
