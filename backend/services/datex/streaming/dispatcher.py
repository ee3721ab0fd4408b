"""
Element Dispatcher - maps local element names to handlers

Each recognized element kind has one handler object with a uniform
signature: handle(source, ctx) -> bool, where the return value only says
whether the element was consumed (for diagnostics). Unknown elements are a
no-op. Adding an element kind means registering one more handler.

Handlers never let per-value errors escape: a malformed number is skipped,
an overflowing push is dropped with a diagnostic, and processing goes on.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..core.errors import MalformedNumberError, QueueOverflowError
from ..core.types import ExtractionConfig, ExtractionStats, VariantDefinition
from ..parsers.scalars import TextCapture, get_decoder
from ..utils.logging import log, debug_log
from ..utils.output import PairWriter
from .block_state import BlockState
from .event_source import XmlEventSource
from .flusher import flush_pairs
from .value_queue import ValueQueue


@dataclass
class ParseContext:
    """Everything a handler may touch, passed explicitly to each call."""
    variant: VariantDefinition
    config: ExtractionConfig
    state: BlockState
    writer: PairWriter
    stats: ExtractionStats = field(default_factory=ExtractionStats)
    text: TextCapture = field(default_factory=TextCapture)

    @classmethod
    def create(
        cls,
        variant: VariantDefinition,
        config: ExtractionConfig,
        writer: PairWriter,
    ) -> "ParseContext":
        ctx = cls(
            variant=variant,
            config=config,
            state=BlockState.from_config(config),
            writer=writer,
            text=TextCapture(config.text_policy, config.max_text),
        )
        if not variant.block_scoped:
            # Values accumulate for the whole document
            ctx.state.open_block()
        return ctx

    def diagnostic(self, message: str) -> None:
        log(message)
        self.stats.record_diagnostic(message)

    def flush(self) -> int:
        emitted = flush_pairs(self.state, self.writer.write_pair)
        self.stats.pairs_emitted += emitted
        return emitted


class ElementHandler:
    """Base class for element handlers."""

    requires_block = True
    """Only recognized while a block is open"""

    def handle(self, source: XmlEventSource, ctx: ParseContext) -> bool:
        raise NotImplementedError


class AnnouncementHandler(ElementHandler):
    """Echo a leaf's text as a standalone output line."""

    requires_block = False

    def handle(self, source, ctx):
        text = ctx.text.capture(source.read_element_text())
        if text is not None:
            ctx.writer.write_announcement(text)
            ctx.stats.announcements += 1
        return True


class BlockStartHandler(ElementHandler):
    requires_block = False

    def handle(self, source, ctx):
        discarded = ctx.state.open_block()
        ctx.stats.blocks_opened += 1
        ctx.stats.leftovers_discarded += discarded
        debug_log(f"Block #{ctx.stats.blocks_opened} opened", ctx.config.debug)
        return True


class SiteIdentifierHandler(ElementHandler):
    """Capture the site identifier from an attribute (absent -> None)."""

    def __init__(self, attribute: str):
        self.attribute = attribute

    def handle(self, source, ctx):
        ctx.state.site_id = ctx.text.capture(source.read_attribute(self.attribute))
        return True


class ContextTextHandler(ElementHandler):
    """Capture a leaf's text as the block's secondary context."""

    def handle(self, source, ctx):
        ctx.state.context = ctx.text.capture(source.read_element_text())
        return True


class ScalarHandler(ElementHandler):
    """
    Decode a leaf's text and enqueue it, then flush any completed pairs.

    Args:
        slot: 'first' or 'second' queue of the block
        kind: 'float' or 'int'
        label: Name used in diagnostics
    """

    def __init__(self, slot: str, kind: str, label: str):
        if slot not in ("first", "second"):
            raise ValueError(f"Unknown queue slot: {slot}")
        self.slot = slot
        self.kind = kind
        self.label = label
        self.decode = get_decoder(kind)

    def _queue(self, state: BlockState) -> ValueQueue:
        return state.first if self.slot == "first" else state.second

    def handle(self, source, ctx):
        try:
            value = self.decode(source.read_element_text())
        except MalformedNumberError as e:
            ctx.stats.malformed_numbers += 1
            debug_log(f"Skipping {self.label}: {e}", ctx.config.debug)
            return True

        queue = self._queue(ctx.state)
        if not queue.push_back(value):
            ctx.stats.values_dropped += 1
            error = queue.last_error
            if isinstance(error, QueueOverflowError):
                ctx.diagnostic(
                    f"{self.label} queue full (max {error.capacity}), dropping value"
                )
            else:
                ctx.diagnostic(f"{self.label} queue could not grow ({error}), dropping value")
            return True

        ctx.flush()
        return True


class ElementDispatcher:
    """
    Name -> handler table plus block-end handling.

    Matching is exact and case-sensitive on the namespace-stripped name.
    """

    def __init__(self, block_element: Optional[str] = None):
        self.block_element = block_element
        self._handlers: Dict[str, ElementHandler] = {}

    def register(self, name: str, handler: ElementHandler) -> None:
        self._handlers[name] = handler

    def names(self) -> List[str]:
        return list(self._handlers)

    def handler_for(self, name: Optional[str]) -> Optional[ElementHandler]:
        if name is None:
            return None
        return self._handlers.get(name)

    def dispatch_start(
        self,
        source: XmlEventSource,
        name: Optional[str],
        ctx: ParseContext,
    ) -> bool:
        """Invoke the handler for a start element; False if nothing handled it."""
        handler = self.handler_for(name)
        if handler is None:
            return False
        if handler.requires_block and not ctx.state.in_block:
            return False
        return handler.handle(source, ctx)

    def dispatch_end(self, name: Optional[str], ctx: ParseContext) -> bool:
        """Flush and reset on the block-end element; False for anything else."""
        if self.block_element is None or name != self.block_element:
            return False
        ctx.flush()
        discarded = ctx.state.close_block()
        ctx.stats.blocks_closed += 1
        ctx.stats.leftovers_discarded += discarded
        if discarded:
            debug_log(f"Block closed, {discarded} unmatched values discarded", ctx.config.debug)
        return True


def build_dispatcher(variant: VariantDefinition) -> ElementDispatcher:
    """Build the handler table for a variant."""
    dispatcher = ElementDispatcher(variant.block_element)
    for name in variant.announcement_elements:
        dispatcher.register(name, AnnouncementHandler())
    if variant.block_element:
        dispatcher.register(variant.block_element, BlockStartHandler())
    dispatcher.register(variant.site_element, SiteIdentifierHandler(variant.site_attribute))
    if variant.context_element:
        dispatcher.register(variant.context_element, ContextTextHandler())
    dispatcher.register(
        variant.first_element,
        ScalarHandler("first", variant.first_kind, variant.first_element),
    )
    dispatcher.register(
        variant.second_element,
        ScalarHandler("second", variant.second_kind, variant.second_element),
    )
    return dispatcher
