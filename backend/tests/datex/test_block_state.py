"""
Unit tests for block state and lock-step pair flushing

Tests cover:
1. Pair order for every interleaving of pushes
2. Leftover discard on block end
3. Index handling across blocks
"""

import itertools

import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from services.datex.core.types import ExtractionConfig
from services.datex.streaming.block_state import BlockPhase, BlockState
from services.datex.streaming.flusher import flush_pairs


# ============================================================================
# Test Fixtures
# ============================================================================

@pytest.fixture(params=["bounded", "growable"])
def state(request):
    config = ExtractionConfig(queue_policy=request.param, initial_capacity=1)
    block = BlockState.from_config(config)
    block.open_block()
    return block


def push_and_flush(state, slot, value, emitted):
    queue = state.first if slot == "F" else state.second
    assert queue.push_back(value)
    return flush_pairs(state, emitted.append)


# ============================================================================
# Flush Tests
# ============================================================================

@pytest.mark.parametrize("order", sorted(set(itertools.permutations("FFFSSS"))))
def test_any_interleaving_yields_ordered_pairs(state, order):
    firsts = iter([1.0, 2.0, 3.0])
    seconds = iter([10, 20, 30])
    emitted = []

    for slot in order:
        value = next(firsts) if slot == "F" else next(seconds)
        push_and_flush(state, slot, value, emitted)

    assert [(p.first, p.second) for p in emitted] == [(1.0, 10), (2.0, 20), (3.0, 30)]
    assert [p.index for p in emitted] == [1, 2, 3]
    assert state.pending() == 0


def test_pair_emitted_as_soon_as_both_available(state):
    emitted = []
    assert push_and_flush(state, "F", 1.0, emitted) == 0
    assert push_and_flush(state, "F", 2.0, emitted) == 0
    assert push_and_flush(state, "S", 10, emitted) == 1
    assert state.first.size() == 1


def test_pairs_carry_site_and_context(state):
    state.site_id = "S1"
    state.context = "2020-01-01T00:00:00Z"
    emitted = []
    push_and_flush(state, "F", 52.1, emitted)
    push_and_flush(state, "S", 4.3, emitted)

    assert emitted[0].site_id == "S1"
    assert emitted[0].context == "2020-01-01T00:00:00Z"


def test_leftovers_discarded_on_close(state):
    emitted = []
    for value in [1.0, 2.0, 3.0]:
        push_and_flush(state, "F", value, emitted)
    push_and_flush(state, "S", 10, emitted)
    flush_pairs(state, emitted.append)

    discarded = state.close_block()

    assert len(emitted) == 1
    assert (emitted[0].first, emitted[0].second) == (1.0, 10)
    assert discarded == 2
    assert state.first.size() == 0
    assert state.second.size() == 0
    assert state.phase is BlockPhase.IDLE


def test_next_block_starts_fresh(state):
    emitted = []
    state.site_id = "S1"
    push_and_flush(state, "F", 1.0, emitted)
    push_and_flush(state, "S", 10, emitted)
    push_and_flush(state, "F", 9.0, emitted)
    state.close_block()

    state.open_block()
    state.site_id = "S2"
    push_and_flush(state, "S", 20, emitted)
    push_and_flush(state, "F", 2.0, emitted)

    assert [(p.index, p.site_id, p.first, p.second) for p in emitted] == [
        (1, "S1", 1.0, 10),
        (1, "S2", 2.0, 20),
    ]


def test_open_block_while_open_resets(state):
    state.site_id = "S1"
    state.first.push_back(1.0)
    state.index = 5

    discarded = state.open_block()

    assert discarded == 1
    assert state.in_block
    assert state.site_id is None
    assert state.index == 1
