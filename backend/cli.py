#!/usr/bin/env python3
"""
Command-line pair extraction for DATEX II documents.

Usage:
    datex-pairs measurements.xml
    curl -s https://example.org/feed.xml.gz | datex-pairs --stats
    datex-pairs --variant coordinates sites.xml > sites.txt

Records go to standard output, diagnostics to standard error.
"""

import argparse
import io
import sys
from contextlib import ExitStack, nullcontext
from typing import List, Optional, TextIO

from services.datex import ExtractionConfig, ExtractionStats, extract_pairs, variant_names
from services.datex.core.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_INITIAL_CAPACITY,
    DEFAULT_MAX_TEXT,
    DEFAULT_QUEUE_CAPACITY,
    OUTPUT_BUFFER_SIZE,
    QUEUE_POLICIES,
    TEXT_POLICIES,
)
from services.datex.core.errors import SourceOpenError
from services.datex.streaming.memory_profiler import profile_memory
from services.datex.utils.sources import open_source
from services.datex.utils.logging import close_log_file, log, set_log_file


def _positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got: {raw}")
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0, got: {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="datex-pairs",
        description="Extract paired measurements from a DATEX II document.",
    )
    parser.add_argument(
        "input",
        nargs="?",
        default="-",
        help="Input path, http(s) URL, or '-' for standard input (default: -).",
    )
    parser.add_argument(
        "--variant",
        choices=variant_names(),
        default="speed-flow",
        help="Element vocabulary to recognize (default: speed-flow).",
    )
    parser.add_argument(
        "--queue-policy",
        choices=QUEUE_POLICIES,
        default="bounded",
        help="Unmatched value storage (default: bounded).",
    )
    parser.add_argument(
        "--queue-capacity",
        type=_positive_int,
        default=DEFAULT_QUEUE_CAPACITY,
        help=f"Capacity of each bounded queue (default: {DEFAULT_QUEUE_CAPACITY}).",
    )
    parser.add_argument(
        "--initial-capacity",
        type=_positive_int,
        default=DEFAULT_INITIAL_CAPACITY,
        help=f"Starting capacity of each growable queue (default: {DEFAULT_INITIAL_CAPACITY}).",
    )
    parser.add_argument(
        "--text-policy",
        choices=TEXT_POLICIES,
        default="bounded",
        help="Text capture policy (default: bounded).",
    )
    parser.add_argument(
        "--max-text",
        type=_positive_int,
        default=DEFAULT_MAX_TEXT,
        help=f"Maximum captured text length under the bounded policy (default: {DEFAULT_MAX_TEXT}).",
    )
    parser.add_argument(
        "--chunk-size",
        type=_positive_int,
        default=DEFAULT_CHUNK_SIZE,
        help=f"Bytes fed to the parser per read (default: {DEFAULT_CHUNK_SIZE}).",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write diagnostics to this file.",
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Print a summary of the run to standard error.",
    )
    parser.add_argument(
        "--profile-memory",
        action="store_true",
        help="Report traced memory usage of the run.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable [STREAM] debug tracing.",
    )
    return parser


def _open_output() -> TextIO:
    """Large-buffered text writer over stdout, or stdout itself when it has no descriptor."""
    try:
        fd = sys.stdout.fileno()
    except (AttributeError, OSError, io.UnsupportedOperation):
        return sys.stdout
    sys.stdout.flush()
    return open(fd, "w", buffering=OUTPUT_BUFFER_SIZE, encoding="utf-8", closefd=False)


def _print_stats(stats: ExtractionStats) -> None:
    log("[STATS] " + ", ".join(
        f"{key}={value}"
        for key, value in stats.as_dict().items()
        if key != "diagnostics"
    ))


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = ExtractionConfig(
        variant=args.variant,
        queue_policy=args.queue_policy,
        queue_capacity=args.queue_capacity,
        initial_capacity=args.initial_capacity,
        text_policy=args.text_policy,
        max_text=args.max_text,
        chunk_size=args.chunk_size,
        debug=args.debug,
    )

    if args.log_file:
        try:
            set_log_file(open(args.log_file, "w", encoding="utf-8"))
        except OSError as e:
            log(f"[ERROR] Cannot open log file {args.log_file}: {e}")
            return 1

    exit_code = 0
    out = _open_output()
    try:
        with ExitStack() as stack:
            try:
                stream = stack.enter_context(open_source(args.input, debug=args.debug))
            except FileNotFoundError as e:
                log(f"[ERROR] Input not found: {e}")
                return 1
            except (SourceOpenError, OSError) as e:
                log(f"[ERROR] Cannot open input: {e}")
                return 1

            profiler = profile_memory("Extraction") if args.profile_memory else nullcontext()
            try:
                with profiler:
                    stats = extract_pairs(stream, out, config)
            except OSError as e:
                log(f"[ERROR] Cannot write output: {e}")
                return 1

        if args.stats:
            _print_stats(stats)
    finally:
        try:
            if out is sys.stdout:
                out.flush()
            else:
                out.close()
        except OSError as e:
            log(f"[ERROR] Cannot flush output: {e}")
            exit_code = 1
        close_log_file()

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
