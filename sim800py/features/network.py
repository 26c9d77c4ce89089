"""
Network manager.

Handles network registration, GPRS attachment and signal quality polling.
"""

import logging
from typing import TYPE_CHECKING

from ..core.clock import PollCache
from ..parsers.network import (
    SignalQualityParser,
    RegistrationStatusParser,
    GprsAttachParser
)
from ..exceptions import ATParseError
from ..types import ErrorKind, SignalQuality

if TYPE_CHECKING:
    from ..core import ModemCore

logger = logging.getLogger(__name__)


class NetworkManager:
    """
    Manages network status queries.

    Each query is rate limited by its own cooldown; calls inside the cooldown
    return the cached result without any I/O.
    """

    def __init__(self, modem_core: "ModemCore") -> None:
        """
        Initialize network manager.

        Args:
            modem_core: ModemCore instance for AT command execution
        """
        self.modem = modem_core
        config = modem_core.config

        self._signal_parser = SignalQualityParser()
        self._creg_parser = RegistrationStatusParser("+CREG: ")
        self._cgreg_parser = RegistrationStatusParser("+CGREG: ")
        self._cgatt_parser = GprsAttachParser()

        self._registration = PollCache(config.registration_cooldown_ms, value=False)
        self._gprs = PollCache(config.gprs_cooldown_ms, value=False)
        self._signal = PollCache(config.signal_cooldown_ms, value=SignalQuality(rssi=0))

        logger.debug("Initialized NetworkManager")

    def is_registered(self) -> bool:
        """
        Check circuit-switched network registration (AT+CREG?).

        A "denied" status triggers a radio cycle and counts a protocol error.

        Returns:
            True if registered (home or roaming)

        Example:

        .. code-block:: python

            if modem.network.is_registered():
                print("On network")
        """
        with self.modem.exclusive("is_registered"):
            return self._poll_registration()

    def _poll_registration(self) -> bool:
        state = self.modem.state
        if not state.initialised:
            return False

        now = self.modem.clock.now_ms()
        if not self._registration.is_due(now):
            return self._registration.value
        self._registration.mark(now)

        protocol = self.modem.protocol
        protocol.wake()
        protocol.send("AT+CREG?")

        status = None
        response = protocol.wait_for_data("+CREG: ", 5.0)
        if response.is_data:
            try:
                status = self._creg_parser.parse(response.line)
            except ATParseError as e:
                logger.warning(f"Unparseable registration status: {e}")
                self.modem.protocol_error("AT+CREG?")

        if not protocol.wait_for_terminal(response, 5.0).is_ok:
            self.modem.protocol_error("AT+CREG?")
            return False

        if status is None:
            return self._registration.value

        if status.is_registered:
            self._registration.value = True
            state.registration_denied = False
        else:
            self._registration.value = False
            if status.is_denied:
                self._recover_denied("network")

        logger.debug(f"Network registration: stat={status.stat}")
        return self._registration.value

    def _recover_denied(self, network: str) -> None:
        logger.warning(f"{network} registration denied, cycling radio")
        self.modem.radio_cycle()
        self.modem.protocol_error(f"{network} registration denied")
        self.modem.state.registration_denied = True
        self.modem.state.last_error = ErrorKind.REGISTRATION_DENIED

    def is_gprs_attached(self) -> bool:
        """
        Check GPRS registration (AT+CGREG?) and attachment (AT+CGATT?).

        Returns:
            True if registered for packet data and attached
        """
        with self.modem.exclusive("is_gprs_attached"):
            return self._poll_gprs()

    def _poll_gprs(self) -> bool:
        if not self.modem.state.initialised:
            return False

        now = self.modem.clock.now_ms()
        if not self._gprs.is_due(now):
            return self._gprs.value
        self._gprs.mark(now)

        protocol = self.modem.protocol
        protocol.wake()
        protocol.send("AT+CGREG?")

        status = None
        response = protocol.wait_for_data("+CGREG: ", 5.0)
        if response.is_data:
            try:
                status = self._cgreg_parser.parse(response.line)
            except ATParseError as e:
                logger.warning(f"Unparseable GPRS registration status: {e}")
                self.modem.protocol_error("AT+CGREG?")

        if not protocol.wait_for_terminal(response, 5.0).is_ok:
            self.modem.protocol_error("AT+CGREG?")
            return False

        if status is not None and status.is_denied:
            self._gprs.value = False
            self._recover_denied("GPRS")
            return False

        if status is not None and not status.is_registered:
            self._gprs.value = False
            return False

        protocol.send("AT+CGATT?")

        attached = None
        response = protocol.wait_for_data("+CGATT: ", 5.0)
        if response.is_data:
            try:
                attached = self._cgatt_parser.parse(response.line)
            except ATParseError as e:
                logger.warning(f"Unparseable GPRS attach state: {e}")
                self.modem.protocol_error("AT+CGATT?")

        if not protocol.wait_for_terminal(response, 5.0).is_ok:
            self.modem.protocol_error("AT+CGATT?")
            return False

        if attached is not None:
            self._gprs.value = attached

        logger.debug(f"GPRS attached: {self._gprs.value}")
        return self._gprs.value

    def get_signal_quality(self) -> SignalQuality:
        """
        Get signal quality (AT+CSQ), rate limited.

        Returns:
            Last known SignalQuality; rssi 0 if never read or not initialised

        Example:

        .. code-block:: python

            signal = modem.network.get_signal_quality()
            print(f"RSSI {signal.rssi}, {signal.bars} bars")
        """
        with self.modem.exclusive("get_signal_quality"):
            return self._poll_signal()

    def _poll_signal(self) -> SignalQuality:
        if not self.modem.state.initialised:
            return SignalQuality(rssi=0)

        now = self.modem.clock.now_ms()
        if not self._signal.is_due(now):
            return self._signal.value
        self._signal.mark(now)

        protocol = self.modem.protocol
        protocol.wake()
        protocol.send("AT+CSQ")

        response = protocol.wait_for_data("+CSQ: ", 5.0)
        if response.is_data:
            try:
                self._signal.value = self._signal_parser.parse(response.line)
                self.modem.state.signal_rssi = self._signal.value.rssi
            except ATParseError as e:
                logger.warning(f"Unparseable signal quality: {e}")
                self.modem.protocol_error("AT+CSQ")

        if not protocol.wait_for_terminal(response, 5.0).is_ok:
            self.modem.protocol_error("AT+CSQ")
            return SignalQuality(rssi=0)

        logger.debug(f"Signal quality: RSSI={self._signal.value.rssi}")
        return self._signal.value

    def get_rssi(self) -> int:
        """Raw RSSI (0-31, 99 = unknown)."""
        return self.get_signal_quality().rssi

    def signal_bars(self) -> int:
        """
        Signal strength as 0-4 bars.

        0 for rssi 0/99; below 10 one bar, below 15 two, below 20 three, else four.
        """
        return self.get_signal_quality().bars

    def signal_percent(self) -> int:
        """Signal strength as ``rssi * 100 // 31`` (0 for rssi 0/99)."""
        return self.get_signal_quality().percent
