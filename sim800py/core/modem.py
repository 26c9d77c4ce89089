"""
Core modem class coordinating transport, protocol, and URC handling.

Owns the session state and runs the bring-up sequence. This is the foundation
that feature managers build upon.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from .clock import Clock, MonotonicClock
from .protocol import ATProtocol
from .reader import LineReader
from .retry import RetryPolicy
from .transport import NullResetLine, ResetLine, Transport
from .urc import URCInterpreter, URCCallback
from ..config import ModemConfig
from ..exceptions import ReentrantCallError
from ..types import CallRecord, ErrorKind, FramingState, ResponseKind, SessionState

logger = logging.getLogger(__name__)

BOOT_WAIT_MS = 1000
RESET_PHASE_MS = 500
PROBE_POLICY = RetryPolicy(attempt_timeout=2.0, deadline_ms=30_000)
BANNER_TIMEOUT = 30.0

# (command, timeout, counts as protocol error when it fails)
CONFIGURATION_STEPS = (
    ("AT&F", 2.0, True),
    ("ATE 0", 2.0, True),
    ("AT+CCID", 2.0, False),
    ("AT+CMGF=1", 2.0, False),
    ("AT+CLIP=1", 15.0, True),
    ("AT+CUSD=1", 2.0, True),
)


class ModemCore:
    """
    Core modem functionality.

    Coordinates:
    - Transport, clock and reset line supplied by the host
    - Line reader and AT protocol (one command in flight at a time)
    - URC interpreter (asynchronous session updates)
    - Bring-up sequence and radio cycle recovery

    The driver is single threaded and not reentrant; ``exclusive`` guards
    every public operation.
    """

    def __init__(
        self,
        transport: Transport,
        clock: Optional[Clock] = None,
        reset_line: Optional[ResetLine] = None,
        idle: Optional[Callable[[], None]] = None,
        config: Optional[ModemConfig] = None,
        log_urcs: bool = False
    ) -> None:
        """
        Initialize modem core.

        Args:
            transport: Transport instance for communication
            clock: Millisecond clock (defaults to MonotonicClock)
            reset_line: Modem reset line (defaults to NullResetLine)
            idle: Host callback invoked at every suspension point; must not
                call back into the driver
            config: Driver tunables
            log_urcs: Whether to log URCs at INFO level
        """
        self.transport = transport
        self.clock = clock or MonotonicClock()
        self.reset_line = reset_line or NullResetLine()
        self.idle = idle
        self.config = config or ModemConfig()

        self.state = SessionState()
        self.call_record = CallRecord()

        self.reader = LineReader(transport, idle=idle, capacity=self.config.rx_buffer_size)
        self.urc = URCInterpreter(
            self.state,
            self.call_record,
            self.clock,
            max_caller_id_len=self.config.max_caller_id_len,
            log_urcs=log_urcs
        )
        self.protocol = ATProtocol(
            transport,
            self.reader,
            self.clock,
            self.urc.handle,
            idle=idle,
            tx_buffer_size=self.config.tx_buffer_size,
            poll_interval_ms=self.config.poll_interval_ms,
            settle_ms=self.config.settle_ms,
            post_tx_delay_ms=self.config.post_tx_delay_ms
        )

        self._busy: Optional[str] = None

        logger.info("Initialized ModemCore")

    @contextmanager
    def exclusive(self, operation: str) -> Iterator[None]:
        """
        Mark a driver operation as in progress.

        Raises:
            ReentrantCallError: If another operation is already running
        """
        if self._busy is not None:
            raise ReentrantCallError(
                f"Cannot start '{operation}' while '{self._busy}' is in progress"
            )
        self._busy = operation
        try:
            yield
        finally:
            self._busy = None

    @property
    def busy(self) -> bool:
        return self._busy is not None

    def protocol_error(self, context: str) -> None:
        """Count a protocol error (explicit ERROR or missing required reply)."""
        self.state.protocol_error_count += 1
        self.state.last_error = ErrorKind.PROTOCOL_ERROR
        logger.warning(f"Protocol error during {context} (total {self.state.protocol_error_count})")

    def modem_rebooted(self, reason: str) -> None:
        """Record an inferred modem reboot and force bring-up on next refresh."""
        self.state.reset_count += 1
        self.state.initialised = False
        self.state.last_error = ErrorKind.MODEM_REBOOTED
        logger.warning(f"Modem reboot inferred: {reason} (reset count {self.state.reset_count})")

    def initialise(self, force_reset: bool = False) -> bool:
        """
        Run the bring-up sequence.

        Safe to call at any point, including after a failed attempt. Any
        failure leaves ``initialised`` False so ``refresh`` retries later.

        Args:
            force_reset: Cycle the hardware reset line first

        Returns:
            True if the modem is configured and ready
        """
        protocol = self.protocol
        self.state.initialised = False
        logger.info(f"Starting modem bring-up (force_reset={force_reset})")

        protocol.pause(BOOT_WAIT_MS)

        if force_reset:
            self.reset_line.assert_reset()
            protocol.pause(RESET_PHASE_MS)
            self.reset_line.release_reset()
            protocol.pause(RESET_PHASE_MS)

        protocol.wake()

        if not self._probe():
            logger.error("Modem did not answer AT probe, bring-up failed")
            self.state.last_error = ErrorKind.TIMEOUT
            return False

        banner = protocol.wait_for_data("SMS Ready", BANNER_TIMEOUT)
        if not banner.is_data and force_reset:
            protocol.send("AT+CCID")
            protocol.wait_for_data(None, 2.0)
            if not protocol.wait_for_status(2.0).is_ok:
                self._sim_absent()
            else:
                logger.warning("No ready banner after hard reset, bring-up deferred")
            return False

        protocol.pause(BOOT_WAIT_MS)

        for command, timeout, counted in CONFIGURATION_STEPS:
            if not self._configure(command, timeout, counted):
                return False

        if not self.radio_cycle():
            logger.error("Radio function cycle failed, bring-up failed")
            self.protocol_error("bring-up radio cycle")
            return False

        self.state.initialised = True
        logger.info("Modem bring-up complete")
        return True

    def _probe(self) -> bool:
        for attempt in PROBE_POLICY.attempts(self.clock, self.idle, self.config.poll_interval_ms):
            self.protocol.send("AT")
            if self.protocol.wait_for_status(PROBE_POLICY.attempt_timeout).is_ok:
                logger.debug(f"AT probe answered on attempt {attempt}")
                return True
            logger.debug(f"No response to AT probe (attempt {attempt})")
        return False

    def _configure(self, command: str, timeout: float, counted: bool) -> bool:
        protocol = self.protocol
        protocol.send(command)

        if command == "AT+CCID":
            if protocol.wait_for_data(None, timeout).is_data:
                logger.debug("SIM card present")
            if not protocol.wait_for_status(timeout).is_ok:
                self._sim_absent()
                return False
            self.state.sim_present = True
            return True

        response = protocol.wait_for_status(timeout)
        if response.is_ok:
            return True

        logger.error(f"Bring-up step {command} failed: {response.kind.value}")
        if counted:
            self.protocol_error(f"bring-up {command}")
        else:
            self.state.last_error = (
                ErrorKind.TIMEOUT if response.kind is ResponseKind.TIMEOUT
                else ErrorKind.PROTOCOL_ERROR
            )
        return False

    def _sim_absent(self) -> None:
        self.state.sim_present = False
        self.state.last_error = ErrorKind.RESOURCE_ABSENT
        logger.error("SIM card not detected")

    def radio_cycle(self) -> bool:
        """
        Turn the radio function off and on again to force re-registration.

        Returns:
            True if both AT+CFUN commands were acknowledged
        """
        logger.info("Cycling radio function")
        self.protocol.send("AT+CFUN=4")
        off = self.protocol.wait_for_status(15.0)
        self.protocol.pause(self.config.radio_off_dwell_ms)
        self.protocol.send("AT+CFUN=1")
        on = self.protocol.wait_for_status(15.0)
        return off.is_ok and on.is_ok

    def refresh(self) -> None:
        """
        Periodic housekeeping.

        Re-runs bring-up if needed and hands any stray line to the URC
        interpreter. Performs no I/O when initialised and the link is quiet.
        """
        if not self.state.initialised:
            logger.info("Modem not initialised, re-running bring-up")
            self.initialise(False)

        if self.reader.poll_line() is FramingState.LINE_READY:
            self.urc.handle(self.reader.line)

    def send_raw(self, cmd: str, timeout: float = 5.0) -> list[str]:
        """
        Send an arbitrary command and collect its reply lines.

        Args:
            cmd: Command text (e.g., "ATI")
            timeout: Seconds to wait for each line

        Returns:
            Reply lines, ending with "OK"/"ERROR" unless the modem went quiet
        """
        if not self.protocol.send(cmd):
            return []

        lines = []
        while True:
            response = self.protocol.wait_for_data(None, timeout)
            if response.kind is ResponseKind.TIMEOUT:
                break
            lines.append(response.line)
            if response.kind is not ResponseKind.DATA:
                break
            if response.line.startswith(("+CME ERROR", "+CMS ERROR")):
                break
        return lines

    def register_urc_callback(self, prefix: str, callback: URCCallback) -> None:
        """
        Register a callback for URCs matching a prefix.

        Example:

        .. code-block:: python

            core.register_urc_callback("+CMTI", lambda line: print(f"SMS: {line}"))
        """
        self.urc.register_callback(prefix, callback)

    def unregister_urc_callback(self, prefix: str) -> bool:
        """Unregister a URC callback."""
        return self.urc.unregister_callback(prefix)

    def close(self) -> None:
        """Close the transport."""
        logger.info("Closing modem connection")
        self.transport.close()
