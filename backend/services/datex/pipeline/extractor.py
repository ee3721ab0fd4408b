"""
Extraction driver - pulls events and routes them through the dispatcher.

Single-threaded and pull-based: each iteration asks the event source for the
next event. Start elements go to the dispatcher, end elements may close a
block, and the loop stops at end of stream or on the first read error.

A block still open at end of stream is not flushed; its unmatched values are
lost along with any pair that only a block-end flush would have produced.
"""

from pathlib import Path
from typing import BinaryIO, Iterator, Optional, TextIO, Tuple, Union

from ..core.types import ExtractionConfig, ExtractionStats
from ..core.variants import get_variant
from ..streaming.dispatcher import ElementDispatcher, ParseContext, build_dispatcher
from ..streaming.event_source import EventKind, XmlEventSource
from ..utils.logging import debug_log
from ..utils.output import PairWriter
from ..utils.sources import open_source


def _prepare(
    stream: BinaryIO,
    sink: Optional[TextIO],
    config: ExtractionConfig,
) -> Tuple[XmlEventSource, ElementDispatcher, ParseContext]:
    variant = get_variant(config.variant)
    source = XmlEventSource(stream, chunk_size=config.chunk_size)
    dispatcher = build_dispatcher(variant)
    writer = PairWriter(sink, variant.record_fields)
    ctx = ParseContext.create(variant, config, writer)
    return source, dispatcher, ctx


def _step(source: XmlEventSource, dispatcher: ElementDispatcher, ctx: ParseContext) -> bool:
    """
    Process one event.

    Returns:
        False once the stream is exhausted or unreadable
    """
    event = source.advance()

    if event.kind is EventKind.START:
        if not dispatcher.dispatch_start(source, event.local_name, ctx):
            ctx.stats.unhandled_elements += 1
        return True

    if event.kind is EventKind.END:
        dispatcher.dispatch_end(event.local_name, ctx)
        return True

    if event.kind is EventKind.ERROR:
        ctx.stats.read_error = event.message
        ctx.diagnostic(f"XML read error encountered: {event.message}")
    return False


def _finish(source: XmlEventSource, ctx: ParseContext) -> ExtractionStats:
    stats = ctx.stats
    if ctx.variant.block_scoped and ctx.state.in_block:
        stats.unclosed_block = True
    ctx.writer.flush()
    debug_log(
        f"Extraction complete: pairs={stats.pairs_emitted}, "
        f"announcements={stats.announcements}, blocks={stats.blocks_closed}, "
        f"dropped={stats.values_dropped}, bytes={source.bytes_read}",
        ctx.config.debug,
    )
    return stats


def extract_pairs(
    stream: BinaryIO,
    sink: TextIO,
    config: Optional[ExtractionConfig] = None,
) -> ExtractionStats:
    """
    Extract matched pairs from a DATEX II document.

    Args:
        stream: Binary input stream
        sink: Text stream receiving one line per record / announcement
        config: Extraction settings (defaults to ExtractionConfig())

    Returns:
        ExtractionStats for the run. A read error stops the run and is
        reported in stats.read_error; lines already written remain valid.

    Example:
        ```python
        with open("measurements.xml", "rb") as f:
            stats = extract_pairs(f, sys.stdout)
        ```
    """
    config = config or ExtractionConfig()
    source, dispatcher, ctx = _prepare(stream, sink, config)
    debug_log(f"Starting extraction (variant: {config.variant}, queues: {config.queue_policy})", config.debug)

    while _step(source, dispatcher, ctx):
        pass

    return _finish(source, ctx)


def extract_pairs_from_path(
    path: Union[str, Path],
    sink: TextIO,
    config: Optional[ExtractionConfig] = None,
    timeout: Optional[int] = None,
) -> ExtractionStats:
    """
    Open a path, URL or "-" and extract pairs from it.

    Raises:
        FileNotFoundError: If a local path does not exist
        SourceOpenError: If a URL cannot be fetched
    """
    config = config or ExtractionConfig()
    kwargs = {"debug": config.debug}
    if timeout is not None:
        kwargs["timeout"] = timeout
    with open_source(path, **kwargs) as stream:
        return extract_pairs(stream, sink, config)


def iter_records(
    stream: BinaryIO,
    config: Optional[ExtractionConfig] = None,
    stats: Optional[ExtractionStats] = None,
) -> Iterator[str]:
    """
    Yield output lines (records and announcements) in arrival order.

    Args:
        stream: Binary input stream
        config: Extraction settings
        stats: Optional object that receives the run's counters as they change
    """
    config = config or ExtractionConfig()
    source, dispatcher, ctx = _prepare(stream, None, config)
    if stats is not None:
        ctx.stats = stats

    running = True
    while running:
        running = _step(source, dispatcher, ctx)
        yield from ctx.writer.drain_lines()

    _finish(source, ctx)
