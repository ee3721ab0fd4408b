"""
DATEX II Streaming Module

Forward-only extraction of paired values with memory bounded by the number
of unmatched values per block.

Key Components:
- event_source.py: Pull cursor over XMLPullParser events
- value_queue.py: Bounded / growable FIFO queues
- block_state.py: Per-block identifiers, queues and output index
- flusher.py: Lock-step draining of both queues
- dispatcher.py: Element name -> handler table
- memory_profiler.py: Memory usage profiling utilities
"""

from .event_source import XmlEventSource, Event, EventKind
from .value_queue import ValueQueue, BoundedValueQueue, GrowableValueQueue, make_value_queue
from .block_state import BlockState, BlockPhase
from .flusher import flush_pairs
from .dispatcher import ElementDispatcher, ParseContext, build_dispatcher

__all__ = [
    "XmlEventSource",
    "Event",
    "EventKind",
    "ValueQueue",
    "BoundedValueQueue",
    "GrowableValueQueue",
    "make_value_queue",
    "BlockState",
    "BlockPhase",
    "flush_pairs",
    "ElementDispatcher",
    "ParseContext",
    "build_dispatcher",
]
