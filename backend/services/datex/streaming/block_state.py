"""
Block State - per-block buffering context

Holds the identifying context of the block currently open (site identifier,
optional secondary context), the two value queues and the 1-based output
index. A new block discards whatever the previous one left unmatched.
"""

from enum import Enum
from typing import Optional

from ..core.types import ExtractionConfig
from .value_queue import ValueQueue, make_value_queue


class BlockPhase(Enum):
    IDLE = "idle"
    IN_BLOCK = "in_block"


class BlockState:
    """
    Mutable state of one measurement block.

    Attributes:
        site_id: Identifier captured for the block (None = absent)
        context: Secondary context text such as a record date (None = absent)
        first: Queue of first-kind values
        second: Queue of second-kind values
        index: Sequence number of the next emitted pair (1-based)
        phase: IDLE until a block starts, IN_BLOCK until it ends
    """

    def __init__(self, first: ValueQueue, second: ValueQueue):
        self.first = first
        self.second = second
        self.site_id: Optional[str] = None
        self.context: Optional[str] = None
        self.index = 1
        self.phase = BlockPhase.IDLE

    @classmethod
    def from_config(cls, config: ExtractionConfig) -> "BlockState":
        return cls(make_value_queue(config), make_value_queue(config))

    @property
    def in_block(self) -> bool:
        return self.phase is BlockPhase.IN_BLOCK

    def pending(self) -> int:
        """Number of buffered values still waiting for a partner."""
        return self.first.size() + self.second.size()

    def reset(self) -> int:
        """
        Clear identifiers, queues and index.

        Returns:
            Number of buffered values that were discarded
        """
        discarded = self.pending()
        self.site_id = None
        self.context = None
        self.first.reset()
        self.second.reset()
        self.index = 1
        return discarded

    def open_block(self) -> int:
        """Start a block (an already open block is reset implicitly)."""
        discarded = self.reset()
        self.phase = BlockPhase.IN_BLOCK
        return discarded

    def close_block(self) -> int:
        discarded = self.reset()
        self.phase = BlockPhase.IDLE
        return discarded
