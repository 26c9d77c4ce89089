"""
AT command protocol handler.

Transmits commands over a settled link and classifies the modem's replies,
routing interleaved unsolicited lines to the URC interpreter.
"""

import logging
from typing import Callable, Optional

from .clock import Clock, elapsed_ms
from .reader import LineReader
from .transport import Transport
from ..types import FramingState, Response, ResponseKind

logger = logging.getLogger(__name__)

CTRL_Z = "\x1a"

# Type alias for the handler of lines nobody asked for
LineHandler = Callable[[str], object]


def looks_like_urc(line: str) -> bool:
    """
    Check whether a line has the "+XXXX:" / "+XXXXX:" shape of a URC.

    Args:
        line: Response line

    Returns:
        True if the 5th or 6th character is a colon after a leading '+'
    """
    if not line.startswith("+"):
        return False
    return (len(line) > 4 and line[4] == ":") or (len(line) > 5 and line[5] == ":")


class ATProtocol:
    """
    AT command protocol handler.

    Exactly one command may be outstanding: every wait consumes lines until
    its outcome is known, and every transmission first drains stray lines so
    a late reply can never be mistaken for the next command's answer.
    """

    def __init__(
        self,
        transport: Transport,
        reader: LineReader,
        clock: Clock,
        urc_handler: LineHandler,
        idle: Optional[Callable[[], None]] = None,
        tx_buffer_size: int = 162,
        poll_interval_ms: int = 10,
        settle_ms: int = 150,
        post_tx_delay_ms: int = 50
    ) -> None:
        """
        Initialize AT protocol handler.

        Args:
            transport: Transport instance for communication
            reader: Line framer reading from the same transport
            clock: Millisecond clock used for every deadline
            urc_handler: Receives lines that are not the awaited reply
            idle: Host callback invoked at every suspension point
            tx_buffer_size: Longest command accepted for transmission
            poll_interval_ms: Sleep between polls in blocking loops
            settle_ms: Quiet period before transmitting
            post_tx_delay_ms: Turnaround delay after transmitting
        """
        self.transport = transport
        self.reader = reader
        self.clock = clock
        self.urc_handler = urc_handler
        self.idle = idle
        self.tx_buffer_size = tx_buffer_size
        self.poll_interval_ms = poll_interval_ms
        self.settle_ms = settle_ms
        self.post_tx_delay_ms = post_tx_delay_ms

        self._tx_buffer = ""

        logger.info("Initialized AT protocol handler")

    @property
    def last_command(self) -> str:
        """The most recently transmitted command."""
        return self._tx_buffer

    def _yield(self) -> None:
        if self.idle:
            self.idle()

    def pause(self, ms: int) -> None:
        """Block for ``ms`` milliseconds, yielding to the idle callback."""
        start = self.clock.now_ms()
        while elapsed_ms(self.clock.now_ms(), start) < ms:
            self._yield()
            self.clock.sleep_ms(self.poll_interval_ms)

    def settle(self) -> None:
        """
        Let the link go quiet, then route any ready lines to the URC handler.
        """
        self.pause(self.settle_ms)

        while self.reader.poll_line() is FramingState.LINE_READY:
            self.urc_handler(self.reader.line)

    def send(self, command: str) -> bool:
        """
        Settle the link and transmit a command followed by CRLF.

        Args:
            command: Command text without terminator (e.g., "AT+CSQ")

        Returns:
            False if the command was rejected as too long, else True
        """
        self.settle()

        if len(command) > self.tx_buffer_size:
            logger.error(
                f"Command of {len(command)} chars exceeds TX buffer "
                f"({self.tx_buffer_size}), not sent: {command[:20]!r}..."
            )
            return False

        self._tx_buffer = command
        logger.debug(f"TxC: {command!r}")
        self.transport.write(command.encode("latin-1") + b"\r\n")

        self.pause(self.post_tx_delay_ms)
        return True

    def wake(self) -> None:
        """Flush any half-received command on the modem side with a bare CRLF."""
        self.send("")
        self.settle()

    def wait_for_status(self, timeout: float) -> Response:
        """
        Wait for a bare OK/ERROR status.

        Lines containing "OK" or "ERROR" end the wait. URC-shaped lines are
        handed to the URC handler and the wait continues; anything else is
        dropped.

        Args:
            timeout: Seconds to wait

        Returns:
            Response of kind OK, ERROR or TIMEOUT
        """
        timeout_ms = int(timeout * 1000)
        start = self.clock.now_ms()

        while True:
            self._yield()

            ready = self.reader.poll_line() is FramingState.LINE_READY
            if ready:
                line = self.reader.line
                if "OK" in line:
                    return Response(ResponseKind.OK, line)
                if "ERROR" in line:
                    logger.debug(f"ERROR status after {self._tx_buffer!r}")
                    return Response(ResponseKind.ERROR, line)
                if looks_like_urc(line):
                    self.urc_handler(line)

            if elapsed_ms(self.clock.now_ms(), start) > timeout_ms:
                logger.debug(f"Status wait timed out after {self._tx_buffer!r}")
                return Response(ResponseKind.TIMEOUT)

            if not ready:
                self.clock.sleep_ms(self.poll_interval_ms)

    def wait_for_data(self, pattern: Optional[str], timeout: float) -> Response:
        """
        Wait for a data line, optionally one containing ``pattern``.

        Short lines ("OK" under 4 chars, "ERROR" under 7 chars) end the wait
        as a status; the length guard keeps payloads that merely contain those
        words from being misread. Non-matching lines go to the URC handler.

        Args:
            pattern: Substring the data line must contain (None = any line)
            timeout: Seconds to wait

        Returns:
            Response of kind DATA (with the line), OK, ERROR or TIMEOUT
        """
        timeout_ms = int(timeout * 1000)
        start = self.clock.now_ms()

        while True:
            self._yield()

            ready = self.reader.poll_line() is FramingState.LINE_READY
            if ready:
                line = self.reader.line
                if len(line) < 4 and "OK" in line:
                    return Response(ResponseKind.OK, line)
                if len(line) < 7 and "ERROR" in line:
                    return Response(ResponseKind.ERROR, line)
                if pattern is None or pattern in line:
                    return Response(ResponseKind.DATA, line)
                self.urc_handler(line)

            if elapsed_ms(self.clock.now_ms(), start) > timeout_ms:
                logger.debug(f"Data wait for {pattern!r} timed out after {self._tx_buffer!r}")
                return Response(ResponseKind.TIMEOUT)

            if not ready:
                self.clock.sleep_ms(self.poll_interval_ms)

    def wait_for_terminal(self, previous: Response, timeout: float) -> Response:
        """
        Consume the terminal status of a command whose data wait returned ``previous``.

        If the data wait already ended on OK or ERROR that is the terminal
        status; otherwise wait for it.
        """
        if previous.kind in (ResponseKind.OK, ResponseKind.ERROR):
            return previous
        return self.wait_for_status(timeout)

    def write_raw(self, data: bytes) -> int:
        """Write bytes straight to the transport (payload streaming)."""
        return self.transport.write(data)
