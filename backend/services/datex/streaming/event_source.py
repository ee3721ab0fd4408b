"""
DATEX II Event Source - forward-only cursor over a markup byte stream

Wraps xml.etree.ElementTree.XMLPullParser (events=("start", "end")) and feeds
it fixed-size chunks, so the document is never held in memory as a whole.

Cursor contract:
- advance() -> Event (START / END / END_OF_STREAM / ERROR)
- current_local_name() -> namespace-stripped name of the current element
- read_element_text() -> text content of the current start element, or None
- read_attribute(name) -> attribute value on the current start element, or None

Memory: an ended element is cleared and detached from its parent as soon as
the cursor moves past it, so the live tree is bounded by nesting depth plus
whatever read_element_text() had to look ahead over.
"""

import xml.etree.ElementTree as ET
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Deque, List, Optional, Tuple

from ..core.constants import DEFAULT_CHUNK_SIZE
from ..core.errors import SourceReadError


class EventKind(Enum):
    START = "start"
    END = "end"
    END_OF_STREAM = "eos"
    ERROR = "error"


@dataclass(frozen=True)
class Event:
    kind: EventKind
    local_name: Optional[str] = None
    message: Optional[str] = None


def local_name(tag: str) -> str:
    """
    Strip a '{namespace}' prefix from an ElementTree tag.

    Examples:
        >>> local_name('{http://datex2.eu/schema/2/2_0}speed')
        'speed'
        >>> local_name('speed')
        'speed'
    """
    if tag[:1] == "{":
        return tag.rsplit("}", 1)[1]
    return tag


class XmlEventSource:
    """
    Pull-based event cursor over a binary XML stream.

    Args:
        stream: Binary file-like object (only read() is used)
        chunk_size: Bytes per read fed to the parser
    """

    def __init__(self, stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be > 0, got: {chunk_size}")
        self._stream = stream
        self._chunk_size = chunk_size
        self._parser = ET.XMLPullParser(events=("start", "end"))
        self._pending: Deque[Tuple[str, ET.Element]] = deque()
        self._stack: List[ET.Element] = []
        self._current: Optional[ET.Element] = None
        self._current_kind: Optional[EventKind] = None
        self._ended: Optional[ET.Element] = None
        self._eof = False
        self._closed = False
        self.error: Optional[SourceReadError] = None
        self.bytes_read = 0

    # ------------------------------------------------------------------
    # Feeding
    # ------------------------------------------------------------------

    def _fill(self) -> bool:
        """
        Feed the parser until at least one new event is pending.

        Returns:
            False if the stream is exhausted (or failed) with nothing pending
        """
        while not self._pending:
            if self.error is not None or self._closed:
                return False
            try:
                if self._eof:
                    self._closed = True
                    self._parser.close()
                else:
                    chunk = self._stream.read(self._chunk_size)
                    if not chunk:
                        self._eof = True
                        continue
                    self.bytes_read += len(chunk)
                    self._parser.feed(chunk)
            except ET.ParseError as e:
                self.error = SourceReadError(str(e))
            except OSError as e:
                self.error = SourceReadError(f"read failed: {e}")
            self._drain()
        return True

    def _drain(self) -> None:
        # XMLPullParser queues a parse error behind the events that preceded it
        try:
            for item in self._parser.read_events():
                self._pending.append(item)
        except ET.ParseError as e:
            if self.error is None:
                self.error = SourceReadError(str(e))

    # ------------------------------------------------------------------
    # Cursor
    # ------------------------------------------------------------------

    def _release_ended(self) -> None:
        ended = self._ended
        self._ended = None
        if ended is None:
            return
        ended.clear()
        if self._stack:
            try:
                self._stack[-1].remove(ended)
            except ValueError:
                pass

    def advance(self) -> Event:
        """Move to the next start or end element event."""
        self._release_ended()

        if not self._pending and not self._fill():
            self._current = None
            if self.error is not None:
                self._current_kind = EventKind.ERROR
                return Event(EventKind.ERROR, message=str(self.error))
            self._current_kind = EventKind.END_OF_STREAM
            return Event(EventKind.END_OF_STREAM)

        event, elem = self._pending.popleft()
        self._current = elem
        if event == "start":
            self._stack.append(elem)
            self._current_kind = EventKind.START
        else:
            if self._stack and self._stack[-1] is elem:
                self._stack.pop()
            self._ended = elem
            self._current_kind = EventKind.END
        return Event(self._current_kind, local_name(elem.tag))

    def current_local_name(self) -> Optional[str]:
        if self._current is None:
            return None
        return local_name(self._current.tag)

    @property
    def depth(self) -> int:
        return len(self._stack)

    def _on_start(self) -> bool:
        return self._current is not None and self._current_kind == EventKind.START

    def read_element_text(self) -> Optional[str]:
        """
        Return the text content of the current start element.

        Looks ahead until the element's end event is parsed; the looked-at
        events stay pending, so the end element is still delivered by
        advance(). Returns None when not positioned on a start element or
        when the element never closes (truncated or malformed input).
        """
        if not self._on_start():
            return None
        elem = self._current

        scanned = 0
        while True:
            for index in range(scanned, len(self._pending)):
                event, pending_elem = self._pending[index]
                if event == "end" and pending_elem is elem:
                    return "".join(elem.itertext())
            scanned = len(self._pending)
            if not self._fill_more():
                return None

    def _fill_more(self) -> bool:
        """Feed one more step without requiring the pending queue to be empty."""
        if self.error is not None or self._closed:
            return False
        before = len(self._pending)
        saved = list(self._pending)
        self._pending.clear()
        progressed = self._fill()
        self._pending.extendleft(reversed(saved))
        return progressed and len(self._pending) > before

    def read_attribute(self, name: str) -> Optional[str]:
        """
        Return an attribute of the current start element, or None if absent.

        An unqualified attribute is preferred; otherwise the first attribute
        whose namespace-stripped name matches is used.
        """
        if not self._on_start():
            return None
        attrib = self._current.attrib
        value = attrib.get(name)
        if value is not None:
            return value
        for key, candidate in attrib.items():
            if local_name(key) == name:
                return candidate
        return None
