"""
Pair Flusher - drains both queues in lock-step.

Called after every successful push, so a pair leaves the queues as soon as
both kinds are available, and once more when a block ends.
"""

from typing import Callable

from ..core.types import MatchedPair
from .block_state import BlockState


def flush_pairs(state: BlockState, emit: Callable[[MatchedPair], None]) -> int:
    """
    Emit one MatchedPair per simultaneous pop from both queues.

    Args:
        state: Block whose queues are drained
        emit: Receives each pair, in match order

    Returns:
        Number of pairs emitted
    """
    emitted = 0
    while state.first.size() > 0 and state.second.size() > 0:
        first = state.first.pop_front()
        second = state.second.pop_front()
        emit(MatchedPair(
            index=state.index,
            site_id=state.site_id,
            first=first,
            second=second,
            context=state.context,
        ))
        state.index += 1
        emitted += 1
    return emitted
