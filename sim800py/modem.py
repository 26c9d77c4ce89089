"""
Main SIM800Modem class.

User-facing API that coordinates all feature managers.
"""

import logging
from typing import Callable, Optional

from .config import ModemConfig
from .core import Clock, ModemCore, ResetLine, SerialTransport, Transport, URCCallback
from .features import CallManager, NetworkManager, SMSManager, WebSubmissionManager
from .types import ErrorKind

logger = logging.getLogger(__name__)


class SIM800Modem:
    """
    Main interface for SIM800 modem control.

    Provides a high-level API for modem operations through feature managers:

    - network: Network registration, GPRS attach, signal quality
    - call: Outbound calls and inbound call records
    - sms: SMS messaging and balance query
    - web: One-shot HTTP submission over GPRS

    The driver is single threaded. The host calls ``refresh`` periodically
    (it re-runs bring-up when needed, drains stray URCs and hangs up
    unanswered inbound calls) and the manager operations on demand. Every
    operation blocks until its reply or timeout; the ``idle`` callback runs
    at every suspension point and must not call back into the modem.

    Example usage with context manager:

    .. code-block:: python

        with SIM800Modem(port="/dev/ttyS0") as modem:
            if modem.initialise():
                signal = modem.network.get_signal_quality()
                print(f"Signal: {signal.bars} bars")

                modem.sms.write_buffer("Hello")
                modem.sms.send_from_buffer("+441234567890")

    Example host loop:

    .. code-block:: python

        modem = SIM800Modem(port="/dev/ttyS0", idle=watchdog.kick)
        while True:
            modem.refresh()
            if modem.call.call_received:
                print(f"Missed call from {modem.call.caller_id}")
                modem.call.clear_caller_id()
            time.sleep(1)
    """

    def __init__(
        self,
        port: Optional[str] = None,
        transport: Optional[Transport] = None,
        baudrate: int = 115200,
        config: Optional[ModemConfig] = None,
        clock: Optional[Clock] = None,
        reset_line: Optional[ResetLine] = None,
        idle: Optional[Callable[[], None]] = None,
        log_urcs: bool = False,
        auto_init: bool = False
    ) -> None:
        """
        Initialize SIM800Modem.

        Args:
            port: Serial port path (e.g., "/dev/ttyS0"). Either port or transport required.
            transport: Custom transport instance (for testing). Overrides port if provided.
            baudrate: Serial port baud rate (default: 115200)
            config: Driver tunables (default: ModemConfig())
            clock: Millisecond clock (default: MonotonicClock)
            reset_line: Hardware reset line (default: none)
            idle: Callback invoked at every suspension point
            log_urcs: Log URCs at INFO level instead of DEBUG (default: False)
            auto_init: Run bring-up immediately (default: False)

        Raises:
            ValueError: If neither port nor transport is provided
            TransportError: If serial port cannot be opened

        Example:

        .. code-block:: python

            # Using serial port, reset line on DTR
            transport = SerialTransport("/dev/ttyS0")
            modem = SIM800Modem(transport=transport, reset_line=SerialResetLine(transport))

            # Using custom transport (for testing)
            from sim800py.core import MockTransport, ManualClock
            modem = SIM800Modem(transport=MockTransport(), clock=ManualClock())
        """
        if transport is None and port is None:
            raise ValueError("Either 'port' or 'transport' must be provided")

        if transport is None:
            transport = SerialTransport(port=port, baudrate=baudrate)
            logger.info(f"Created serial transport for {port}")

        self._core = ModemCore(
            transport=transport,
            clock=clock,
            reset_line=reset_line,
            idle=idle,
            config=config,
            log_urcs=log_urcs
        )

        self.network = NetworkManager(self._core)
        self.call = CallManager(self._core)
        self.sms = SMSManager(self._core)
        self.web = WebSubmissionManager(self._core)

        logger.info("Initialized SIM800Modem")

        if auto_init:
            self.initialise()

    @property
    def core(self) -> ModemCore:
        return self._core

    def initialise(self, force_reset: bool = False) -> bool:
        """
        Run the modem bring-up sequence.

        Args:
            force_reset: Cycle the hardware reset line first

        Returns:
            True if the modem is configured and ready

        Example:

        .. code-block:: python

            if not modem.initialise(force_reset=True):
                print(f"Bring-up failed: {modem.last_error}")
        """
        with self._core.exclusive("initialise"):
            return self._core.initialise(force_reset)

    def refresh(self) -> None:
        """
        Periodic housekeeping; call from the host loop.

        Re-runs bring-up if the modem is not initialised, hands any stray
        line to the URC interpreter and hangs up an inbound call that has
        been ringing too long. With nothing to do it performs no I/O.
        """
        with self._core.exclusive("refresh"):
            self._core.refresh()
            self.call.service_inbound()

    def send_raw_at(self, cmd: str, timeout: float = 5.0) -> list[str]:
        """
        Send a raw AT command.

        For interactive and diagnostic use with commands not covered by the
        feature managers.

        Args:
            cmd: AT command (e.g., "ATI")
            timeout: Seconds to wait for each reply line

        Returns:
            List of response lines (empty if the modem stayed silent)

        Example:

        .. code-block:: python

            response = modem.send_raw_at("AT+GSN")
            imei = response[0]
        """
        with self._core.exclusive("send_raw_at"):
            return self._core.send_raw(cmd, timeout)

    def register_urc_callback(self, prefix: str, callback: URCCallback) -> None:
        """
        Register a callback for unsolicited result codes.

        Callbacks run synchronously inside whatever operation saw the line;
        they must not call back into the modem. Exceptions they raise are
        logged and discarded.

        Args:
            prefix: URC prefix to match (e.g., "+CMTI" for SMS notifications)
            callback: Function to call when URC is received.
                     Signature: callback(line: str) -> None

        Example:

        .. code-block:: python

            modem.register_urc_callback("+CMTI", lambda line: print(f"New SMS: {line}"))
        """
        self._core.register_urc_callback(prefix, callback)

    def unregister_urc_callback(self, prefix: str) -> bool:
        """
        Unregister a URC callback.

        Returns:
            True if callback was removed, False if not found
        """
        return self._core.unregister_urc_callback(prefix)

    @property
    def initialised(self) -> bool:
        return self._core.state.initialised

    @property
    def sim_present(self) -> bool:
        return self._core.state.sim_present

    @property
    def registration_denied(self) -> bool:
        return self._core.state.registration_denied

    @property
    def protocol_error_count(self) -> int:
        """
        Session-wide protocol error counter.

        Never reset by the driver; a steadily growing value is the signal to
        hard reset the modem.
        """
        return self._core.state.protocol_error_count

    @property
    def reset_count(self) -> int:
        """Number of modem reboots detected."""
        return self._core.state.reset_count

    @property
    def website_connected(self) -> bool:
        return self._core.state.website_connected

    @property
    def last_error(self) -> Optional[ErrorKind]:
        """Kind of the most recent failure, or None."""
        return self._core.state.last_error

    def close(self) -> None:
        """
        Close the modem connection.

        Example:

        .. code-block:: python

            modem.close()
        """
        self._core.close()
        logger.info("Modem closed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, *exc):
        """
        Context manager exit.

        Automatically closes the modem connection.
        """
        self.close()

    def __repr__(self) -> str:
        """String representation of modem."""
        status = "initialised" if self.initialised else "uninitialised"
        return f"<SIM800Modem status={status} errors={self.protocol_error_count}>"
