"""
Value Queues - FIFO buffers for unmatched scalar values

Two capacity policies share one contract (push_back / pop_front / size / reset):

1. BoundedValueQueue - fixed slot count, push on a full queue fails and the
   value is dropped by the caller
2. GrowableValueQueue - capacity doubles on demand, with the doubling guarded
   against overflowing the configured ceiling

Storage is a flat slot list indexed by start/end counters (not a ring).
When the tail reaches the end of the slots, live values are compacted back
to offset 0. Once the queue drains, both counters are normalized to 0.
"""

from typing import Generic, List, Optional, TypeVar

from ..core.constants import (
    DEFAULT_QUEUE_CAPACITY,
    DEFAULT_INITIAL_CAPACITY,
    MAX_GROWABLE_CAPACITY,
)
from ..core.errors import DatexError, QueueOverflowError, AllocationFailureError
from ..core.types import ExtractionConfig

T = TypeVar("T")


class ValueQueue(Generic[T]):
    """
    FIFO queue of scalars of one kind.

    Subclasses decide what happens when the tail runs out of slots by
    implementing _make_room().
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"capacity must be > 0, got: {capacity}")
        self._slots: List[Optional[T]] = [None] * capacity
        self._start = 0
        self._end = 0
        self.last_error: Optional[DatexError] = None

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def size(self) -> int:
        return self._end - self._start if self._end >= self._start else 0

    def __len__(self) -> int:
        return self.size()

    def is_empty(self) -> bool:
        return self.size() == 0

    def push_back(self, value: T) -> bool:
        """
        Append a value.

        Returns:
            True on success. False if the value was not stored; the reason is
            left in last_error and the queue is unchanged.
        """
        if self._end >= len(self._slots):
            try:
                self._make_room()
            except DatexError as e:
                self.last_error = e
                return False
        self._slots[self._end] = value
        self._end += 1
        self.last_error = None
        return True

    def pop_front(self) -> Optional[T]:
        """Remove and return the oldest value, or None when empty."""
        if self.size() == 0:
            return None
        value = self._slots[self._start]
        self._slots[self._start] = None
        self._start += 1
        if self._start == self._end:
            self._start = 0
            self._end = 0
        return value

    def reset(self) -> None:
        """Drop every element in O(1); capacity is kept."""
        self._start = 0
        self._end = 0

    def values(self) -> List[T]:
        """Snapshot of the live values in FIFO order."""
        return list(self._slots[self._start:self._end])

    def _compact(self, new_capacity: int) -> None:
        live = self._slots[self._start:self._end]
        slots: List[Optional[T]] = [None] * new_capacity
        slots[:len(live)] = live
        self._slots = slots
        self._start = 0
        self._end = len(live)

    def _make_room(self) -> None:
        raise NotImplementedError


class BoundedValueQueue(ValueQueue[T]):
    """Fixed-capacity queue: the (capacity+1)-th unmatched value is rejected."""

    def __init__(self, capacity: int = DEFAULT_QUEUE_CAPACITY):
        super().__init__(capacity)

    def _make_room(self) -> None:
        if self.size() >= len(self._slots):
            raise QueueOverflowError(len(self._slots))
        self._compact(len(self._slots))


class GrowableValueQueue(ValueQueue[T]):
    """
    Queue whose capacity expands geometrically.

    Growth doubles the current capacity until it covers size + 1. If doubling
    would pass max_capacity, the exact required capacity is used instead;
    a requirement beyond max_capacity (or a MemoryError while allocating)
    fails the push and leaves the queue in its prior state.
    """

    def __init__(
        self,
        initial_capacity: int = DEFAULT_INITIAL_CAPACITY,
        max_capacity: int = MAX_GROWABLE_CAPACITY,
    ):
        if max_capacity < initial_capacity:
            raise ValueError("max_capacity must be >= initial_capacity")
        super().__init__(initial_capacity)
        self.max_capacity = max_capacity

    def _grown_capacity(self, required: int) -> int:
        if required > self.max_capacity:
            raise AllocationFailureError(
                required, f"exceeds maximum capacity {self.max_capacity}"
            )
        capacity = max(len(self._slots), 1)
        while capacity < required:
            if capacity > self.max_capacity // 2:
                return required
            capacity *= 2
        return capacity

    def _make_room(self) -> None:
        required = self.size() + 1
        new_capacity = self._grown_capacity(required)
        try:
            self._compact(new_capacity)
        except MemoryError:
            raise AllocationFailureError(required, "out of memory") from None


def make_value_queue(config: ExtractionConfig) -> ValueQueue:
    """Build an empty queue for the configured capacity policy."""
    if config.queue_policy == "growable":
        return GrowableValueQueue(config.initial_capacity, config.max_capacity)
    return BoundedValueQueue(config.queue_capacity)
