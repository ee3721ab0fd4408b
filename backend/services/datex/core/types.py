"""
Type definitions for the DATEX II pair extraction pipeline.

This module provides the configuration, variant description and result
structures shared by the queue, decoder, dispatcher and driver layers.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, List, Tuple, Union, Dict, Any

from .constants import (
    DEFAULT_QUEUE_CAPACITY,
    DEFAULT_INITIAL_CAPACITY,
    MAX_GROWABLE_CAPACITY,
    DEFAULT_MAX_TEXT,
    DEFAULT_CHUNK_SIZE,
    MAX_RECORDED_DIAGNOSTICS,
    QUEUE_POLICIES,
    TEXT_POLICIES,
    UNKNOWN_SITE,
    UNKNOWN_DATE,
)

Scalar = Union[int, float]


@dataclass
class ExtractionConfig:
    """Configuration for one extraction run."""

    variant: str = "speed-flow"
    """Name of the element vocabulary to recognize ('speed-flow' or 'coordinates')"""

    queue_policy: str = "bounded"
    """'bounded' (fixed capacity, drop newest) or 'growable' (doubling capacity)"""

    queue_capacity: int = DEFAULT_QUEUE_CAPACITY
    """Maximum unmatched values per kind under the bounded policy"""

    initial_capacity: int = DEFAULT_INITIAL_CAPACITY
    """Starting capacity under the growable policy"""

    max_capacity: int = MAX_GROWABLE_CAPACITY
    """Hard ceiling for growable capacity arithmetic"""

    text_policy: str = "bounded"
    """'bounded' (silently truncated) or 'dynamic' (exact length) text capture"""

    max_text: int = DEFAULT_MAX_TEXT
    """Maximum captured characters under the bounded text policy"""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    """Bytes read from the input per parser feed"""

    debug: bool = False
    """Enable [STREAM] debug tracing"""

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if self.queue_policy not in QUEUE_POLICIES:
            raise ValueError(
                f"queue_policy must be one of {list(QUEUE_POLICIES)}, got: {self.queue_policy}"
            )
        if self.text_policy not in TEXT_POLICIES:
            raise ValueError(
                f"text_policy must be one of {list(TEXT_POLICIES)}, got: {self.text_policy}"
            )
        if self.queue_capacity <= 0:
            raise ValueError(f"queue_capacity must be > 0, got: {self.queue_capacity}")
        if self.initial_capacity <= 0:
            raise ValueError(f"initial_capacity must be > 0, got: {self.initial_capacity}")
        if self.max_capacity < self.initial_capacity:
            raise ValueError("max_capacity must be >= initial_capacity")
        if self.max_text <= 0:
            raise ValueError(f"max_text must be > 0, got: {self.max_text}")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be > 0, got: {self.chunk_size}")


@dataclass(frozen=True)
class VariantDefinition:
    """
    Element vocabulary for one kind of DATEX II publication.

    Attributes:
        name: Variant name used on the CLI / API
        block_element: Element whose start resets and whose end flushes a block
            (None = one permanent block for the whole document)
        site_element: Element carrying the site identifier as an attribute
        site_attribute: Attribute name holding the identifier
        context_element: Leaf element whose text becomes the secondary context
        first_element / second_element: Leaf elements holding the paired values
        first_kind / second_kind: 'float' or 'int'
        announcement_elements: Leaves echoed verbatim as standalone lines
        record_fields: Output field order, drawn from
            'index', 'site', 'context', 'first', 'second'
    """
    name: str
    block_element: Optional[str]
    site_element: str
    site_attribute: str
    first_element: str
    first_kind: str
    second_element: str
    second_kind: str
    context_element: Optional[str] = None
    announcement_elements: Tuple[str, ...] = ()
    record_fields: Tuple[str, ...] = ("index", "site", "first", "second")

    @property
    def block_scoped(self) -> bool:
        return self.block_element is not None

    def recognized_elements(self) -> List[str]:
        names = list(self.announcement_elements)
        if self.block_element:
            names.append(self.block_element)
        names.append(self.site_element)
        if self.context_element:
            names.append(self.context_element)
        names.extend([self.first_element, self.second_element])
        return names


@dataclass(frozen=True)
class MatchedPair:
    """One value from each queue, matched by arrival position."""
    index: int
    site_id: Optional[str]
    first: Scalar
    second: Scalar
    context: Optional[str] = None

    @property
    def site_label(self) -> str:
        return self.site_id if self.site_id is not None else UNKNOWN_SITE

    @property
    def context_label(self) -> str:
        return self.context if self.context is not None else UNKNOWN_DATE


def format_scalar(value: Scalar) -> str:
    """Render a value the way C's %g / %ld would."""
    if isinstance(value, float):
        return "%g" % value
    return str(value)


def format_pair(pair: MatchedPair, fields: Tuple[str, ...]) -> str:
    """Render a matched pair as one space-separated record."""
    parts = []
    for name in fields:
        if name == "index":
            parts.append(str(pair.index))
        elif name == "site":
            parts.append(pair.site_label)
        elif name == "context":
            parts.append(pair.context_label)
        elif name == "first":
            parts.append(format_scalar(pair.first))
        elif name == "second":
            parts.append(format_scalar(pair.second))
        else:
            raise ValueError(f"Unknown record field: {name}")
    return " ".join(parts)


@dataclass
class ExtractionStats:
    """Counters and diagnostics collected during one extraction run."""
    pairs_emitted: int = 0
    announcements: int = 0
    blocks_opened: int = 0
    blocks_closed: int = 0
    values_dropped: int = 0
    malformed_numbers: int = 0
    leftovers_discarded: int = 0
    unhandled_elements: int = 0
    unclosed_block: bool = False
    read_error: Optional[str] = None
    diagnostics: List[str] = field(default_factory=list)
    diagnostics_total: int = 0

    def record_diagnostic(self, message: str) -> None:
        self.diagnostics_total += 1
        if len(self.diagnostics) < MAX_RECORDED_DIAGNOSTICS:
            self.diagnostics.append(message)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)
