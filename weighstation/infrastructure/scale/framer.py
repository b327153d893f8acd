"""
Line framing for scale indicator output.

Truck scale indicators stream readings over RS232, one per line, e.g.::

    ST,GS, +  45000 kg

Chunks arrive with arbitrary boundaries, so a reading can be split across
reads or several readings can arrive together.
"""

import math
import re
from collections.abc import Iterable, Iterator

from weighstation.domain.models import WeightReading

LINE_SEPARATOR = re.compile(r"[\r\n]+")
NUMBER = re.compile(r"\d+(?:\.\d+)?")


class StreamFramer:
    """
    Decodes a text stream into weight readings.

    Keeps the unterminated tail of the stream between chunks. Lines that
    carry no number (status words, framing characters) are dropped.

    Example:
        >>> framer = StreamFramer()
        >>> framer.feed("ST,GS,+ 124")
        []
        >>> [r.value for r in framer.feed("00 kg\\r\\n")]
        [12400.0]
    """

    def __init__(self) -> None:
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received after the last line terminator."""
        return self._buffer

    def feed(self, chunk: str) -> list[WeightReading]:
        """
        Consume one chunk and return the readings it completed.

        Args:
            chunk: Decoded text from the serial line.

        Returns:
            list: Readings from every line terminated by this chunk.
        """
        if not chunk:
            return []

        lines = LINE_SEPARATOR.split(self._buffer + chunk)
        self._buffer = lines.pop()

        readings = []
        for line in lines:
            value = parse_weight(line)
            if value is not None:
                readings.append(WeightReading(value))
        return readings

    def decode(self, chunks: Iterable[str]) -> Iterator[WeightReading]:
        """Lazily yield readings for a sequence of chunks."""
        for chunk in chunks:
            yield from self.feed(chunk)

    def reset(self) -> None:
        """Drop any partial line, e.g. after reconnecting."""
        self._buffer = ""


def parse_weight(line: str) -> float | None:
    """
    Extract the first number of a scale line.

    Args:
        line: One complete line from the indicator.

    Returns:
        float: Weight in kg, or None if the line carries no number.
    """
    if not line.strip():
        return None

    match = NUMBER.search(line)
    if match is None:
        return None

    value = float(match.group(0))
    if not math.isfinite(value):
        return None
    return value
