"""
Line-oriented output for matched pairs and announcements.

Records and announcement lines share one sink and keep arrival order.
Diagnostics never go through this writer.
"""

from typing import Callable, List, Optional, TextIO, Tuple

from ..core.types import MatchedPair, format_pair


class PairWriter:
    """
    Writes one line per record to a text sink.

    Args:
        sink: Text stream receiving lines (None = collect into self.lines)
        record_fields: Field order used to render a MatchedPair
    """

    def __init__(
        self,
        sink: Optional[TextIO],
        record_fields: Tuple[str, ...] = ("index", "site", "first", "second"),
    ):
        self.sink = sink
        self.record_fields = record_fields
        self.lines: List[str] = []
        self._write: Callable[[str], None] = (
            self.lines.append if sink is None else self._write_to_sink
        )

    def _write_to_sink(self, line: str) -> None:
        self.sink.write(line + "\n")

    def write_pair(self, pair: MatchedPair) -> None:
        self._write(format_pair(pair, self.record_fields))

    def write_announcement(self, text: str) -> None:
        self._write(text)

    def drain_lines(self) -> List[str]:
        """Hand over collected lines (collect mode) and start a new batch."""
        lines = self.lines
        self.lines = []
        self._write = self.lines.append if self.sink is None else self._write_to_sink
        return lines

    def flush(self) -> None:
        if self.sink is not None and hasattr(self.sink, "flush"):
            self.sink.flush()
