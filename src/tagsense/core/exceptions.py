"""Exception types raised by the recommendation core."""


class TagSenseError(Exception):
    """Base class for TagSense errors."""


class DimensionMismatch(TagSenseError, ValueError):
    """Vector operands have incompatible lengths."""

    def __init__(self, left: int, right: int, message: str | None = None):
        self.left = left
        self.right = right
        super().__init__(message or f"Vector dimensions differ: {left} != {right}")


class LookupFailure(TagSenseError):
    """A backing store is unreachable or returned malformed data."""

    def __init__(self, store: str, message: str):
        self.store = store
        super().__init__(f"{store}: {message}")
