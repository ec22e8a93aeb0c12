"""Error types for reactant."""


class ReactantError(Exception):
    """Base error for all reactant errors."""
    pass


class ReactiveCycleError(ReactantError):
    """Raised when a flush cascades past the configured depth, or a computed reads itself."""

    def __init__(self, depth: int | None = None, culprit: object = None):
        if depth is None:
            msg = f"reactive cycle: {culprit!r} reads its own value"
        else:
            msg = f"possible reactive cycle: cascade depth exceeded {depth}"
            if culprit is not None:
                msg += f" while scheduling {culprit!r}"
        super().__init__(msg)
        self.depth = depth
        self.culprit = culprit


class ReadOnlyError(ReactantError):
    """Raised when writing to a computed property."""

    def __init__(self, key: object):
        super().__init__(f"Cannot set computed property {key!r}. Computed properties are read-only.")
        self.key = key


class NoOperationError(ReactantError):
    """Raised by refetch() when no operation has ever been invoked."""

    message = "No operation to refetch. Call invoke() first."

    def __init__(self):
        super().__init__(self.message)


class OperationCancelled(ReactantError):
    """Raised inside an operation body whose cancel token was cancelled."""
    pass
