"""
Input openers for DATEX II documents.

Supported inputs:
- "-"           standard input
- local path    plain or gzip-compressed file
- http(s) URL   streamed with requests (never downloaded as a whole)

Gzip content is recognized by its magic bytes, not by file name, since
published feeds are often served as *.xml.gz or without any suffix.
"""

import gzip
import io
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Union

import requests

from ..core.constants import GZIP_MAGIC, DEFAULT_FETCH_TIMEOUT
from ..core.errors import SourceOpenError
from .logging import debug_log


def is_url(spec: str) -> bool:
    return spec.startswith(("http://", "https://"))


def maybe_decompress(stream: BinaryIO) -> BinaryIO:
    """
    Wrap a stream in a gzip reader when it starts with the gzip magic.

    The stream is wrapped in a BufferedReader if needed so the first bytes
    can be peeked without consuming them.
    """
    if not hasattr(stream, "peek"):
        stream = io.BufferedReader(stream)
    head = stream.peek(len(GZIP_MAGIC))[:len(GZIP_MAGIC)]
    if head == GZIP_MAGIC:
        return gzip.GzipFile(fileobj=stream, mode="rb")
    return stream


@contextmanager
def open_url(url: str, timeout: int = DEFAULT_FETCH_TIMEOUT, debug: bool = False) -> Iterator[BinaryIO]:
    """
    Stream a remote document.

    Raises:
        SourceOpenError: On connection failure or a non-2xx status
    """
    debug_log(f"Fetching {url}", debug)
    try:
        response = requests.get(url, stream=True, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        raise SourceOpenError(f"Failed to fetch {url}: {e}") from e

    try:
        # Undo transfer Content-Encoding; payload gzip is handled separately
        response.raw.decode_content = True
        yield maybe_decompress(response.raw)
    finally:
        response.close()


@contextmanager
def open_source(
    spec: Union[str, Path],
    timeout: int = DEFAULT_FETCH_TIMEOUT,
    debug: bool = False,
) -> Iterator[BinaryIO]:
    """
    Open an input for extraction.

    Args:
        spec: "-", a filesystem path, or an http(s) URL
        timeout: HTTP timeout in seconds
        debug: Enable debug tracing

    Yields:
        Binary stream positioned at the start of the XML document

    Raises:
        FileNotFoundError: If a local path does not exist
        SourceOpenError: If a URL cannot be fetched
    """
    spec = str(spec)
    if spec == "-":
        yield maybe_decompress(sys.stdin.buffer)
        return

    if is_url(spec):
        with open_url(spec, timeout=timeout, debug=debug) as stream:
            yield stream
        return

    path = Path(spec).expanduser()
    if not path.exists():
        raise FileNotFoundError(str(path))
    debug_log(f"Opening {path}", debug)
    with open(path, "rb") as raw:
        yield maybe_decompress(raw)
