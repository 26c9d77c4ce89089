"""
Incremental line framer.

Turns the modem's byte stream into discrete response lines: CR ends a line,
LF is dropped, empty lines are never surfaced.
"""

import logging
from typing import Callable, Optional

from .transport import Transport
from ..types import FramingState

logger = logging.getLogger(__name__)

CR = 0x0D
LF = 0x0A


class LineReader:
    """
    Bounded-buffer line framer.

    One line is held at a time. Once ``poll_line`` has returned LINE_READY the
    line stays readable via ``line`` until the next ``poll_line`` call, which
    clears it before framing resumes.
    """

    def __init__(
        self,
        transport: Transport,
        idle: Optional[Callable[[], None]] = None,
        capacity: int = 162
    ) -> None:
        """
        Initialize line reader.

        Args:
            transport: Byte source
            idle: Callback invoked between bytes
            capacity: Longest line that can be framed
        """
        self.transport = transport
        self.idle = idle
        self.capacity = capacity

        self._buffer = bytearray()
        self._line: Optional[str] = None
        self.state = FramingState.IDLE

    @property
    def line(self) -> Optional[str]:
        """The framed line while state is LINE_READY, else None."""
        return self._line

    def poll_line(self) -> FramingState:
        """
        Consume available bytes until a line is framed or input runs dry.

        Returns:
            LINE_READY if a line was framed, OVERFLOW_RECOVERED if an
            unterminated run was discarded and nothing else is ready,
            WAITING otherwise
        """
        if self.state in (FramingState.LINE_READY, FramingState.IDLE):
            self.clear()

        self.state = FramingState.WAITING
        overflowed = False

        while self.transport.available():
            if self.idle:
                self.idle()

            byte = self.transport.read_byte()
            if byte is None:
                break

            if byte == LF:
                continue

            if byte == CR:
                if self._buffer:
                    self._line = self._buffer.decode("latin-1")
                    self._buffer.clear()
                    logger.debug(f"Rx: {self._line}")
                    self.state = FramingState.LINE_READY
                    return self.state
                continue

            if len(self._buffer) < self.capacity:
                self._buffer.append(byte)
            else:
                logger.warning(f"Rx line exceeded {self.capacity} bytes, discarding")
                self._buffer.clear()
                overflowed = True

        if overflowed:
            self.state = FramingState.OVERFLOW_RECOVERED
        return self.state

    def clear(self) -> None:
        """Drop any partial or framed line."""
        self._buffer.clear()
        self._line = None
