"""
Exception taxonomy for DATEX II pair extraction.

Per-value errors (malformed numbers, queue overflow, allocation failure) are
raised close to where they happen and absorbed by the element handler that
triggered them. Only source-level errors stop the extraction loop.
"""


class DatexError(Exception):
    """Base class for all extraction errors."""


class MalformedNumberError(DatexError, ValueError):
    """Element text does not parse as the expected numeric type."""

    def __init__(self, text: str, kind: str, reason: str = "not a number"):
        self.text = text
        self.kind = kind
        self.reason = reason
        super().__init__(f"cannot decode {text!r} as {kind}: {reason}")


class QueueOverflowError(DatexError):
    """Push onto a bounded queue that is already full."""

    def __init__(self, capacity: int):
        self.capacity = capacity
        super().__init__(f"queue full (max {capacity})")


class AllocationFailureError(DatexError):
    """A growable queue could not obtain the capacity it needs."""

    def __init__(self, required: int, reason: str):
        self.required = required
        self.reason = reason
        super().__init__(f"cannot grow queue to {required} slots: {reason}")


class SourceReadError(DatexError):
    """The event source hit a malformed or truncated document."""


class SourceOpenError(DatexError):
    """The input could not be opened (HTTP failure, unreadable stream)."""
