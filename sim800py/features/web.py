"""
Web submission manager.

Runs a one-shot HTTP request over a raw TCP socket opened by the modem's IP
stack: attach GPRS, bring up the PDP context, connect, stream the request,
wait for the server's acknowledgement line, then tear everything down.
"""

import logging
from typing import TYPE_CHECKING, Union

from ..core.protocol import CTRL_Z
from ..parsers.network import RegistrationStatusParser, GprsAttachParser
from ..exceptions import ATParseError
from ..types import ErrorKind, ResponseKind

if TYPE_CHECKING:
    from ..core import ModemCore

logger = logging.getLogger(__name__)

QUERY_TIMEOUT = 5.0
APN_TIMEOUT = 10.0
PDP_TIMEOUT = 85.0
ADDRESS_TIMEOUT = 2.0
CONNECT_TIMEOUT = 75.0
SEND_TIMEOUT = 75.0
ACK_TIMEOUT = 75.0
CLOSED_TIMEOUT = 10.0
CLOSE_TIMEOUT = 10.0
SHUT_TIMEOUT = 65.0
ARM_SEND_DELAY_MS = 500


class WebSubmissionManager:
    """
    Manages the GPRS/TCP web submission session.

    Usage is three calls: ``prepare`` opens the socket and arms send mode,
    ``send_payload`` streams the request bytes, ``complete`` finishes the
    send and waits for the server's verdict. Any failure tears the IP stack
    down with ``reset_gprs``.

    Example:

    .. code-block:: python

        if modem.web.prepare():
            modem.web.send_payload(b"GET /log?v=12 HTTP/1.1\\r\\nHost: example.com\\r\\n\\r\\n")
            accepted = modem.web.complete()
    """

    def __init__(self, modem_core: "ModemCore") -> None:
        """
        Initialize web submission manager.

        Args:
            modem_core: ModemCore instance for AT command execution
        """
        self.modem = modem_core
        self._cgreg_parser = RegistrationStatusParser("+CGREG: ")
        self._cgatt_parser = GprsAttachParser()
        logger.debug("Initialized WebSubmissionManager")

    @property
    def connected(self) -> bool:
        """True between a successful ``prepare`` and teardown or a CLOSED URC."""
        return self.modem.state.website_connected

    def prepare(self) -> bool:
        """
        Attach to GPRS and open the TCP connection to the configured host.

        Returns:
            True if the socket is open and the modem is waiting for payload
        """
        with self.modem.exclusive("prepare"):
            return self._prepare()

    def _prepare(self) -> bool:
        state = self.modem.state
        if not state.initialised:
            return False

        config = self.modem.config
        if not config.web_host:
            logger.error("No web host configured, cannot open connection")
            return False

        state.website_connected = False
        protocol = self.modem.protocol
        protocol.wake()

        protocol.send("AT+CGREG?")
        response = protocol.wait_for_data("+CGREG: ", QUERY_TIMEOUT)
        if response.is_data:
            registered = self._parse_registered(response.line)
            protocol.wait_for_terminal(response, QUERY_TIMEOUT)
            if not registered:
                logger.warning("Not registered for GPRS, web submission skipped")
                return False

        protocol.send("AT+CGATT?")
        response = protocol.wait_for_data("+CGATT: ", QUERY_TIMEOUT)
        if response.is_data:
            if not self._parse_attached(response.line):
                logger.warning("GPRS not attached, resetting")
                self._reset_gprs()
                return False
            protocol.wait_for_terminal(response, QUERY_TIMEOUT)

        command = f'AT+CSTT="{config.apn}","{config.apn_user}","{config.apn_password}"'
        protocol.send(command)
        if not protocol.wait_for_status(APN_TIMEOUT).is_ok:
            return self._abort(command, counted=True)

        protocol.send("AT+CIICR")
        if not protocol.wait_for_status(PDP_TIMEOUT).is_ok:
            return self._abort("AT+CIICR", counted=True)

        protocol.send("AT+CIFSR")
        response = protocol.wait_for_data(None, ADDRESS_TIMEOUT)
        if not response.is_data:
            return self._abort("AT+CIFSR")
        logger.info(f"PDP context up, address {response.line}")

        command = f'AT+CIPSTART="TCP","{config.web_host}",{config.web_port}'
        protocol.send(command)
        if not protocol.wait_for_status(CONNECT_TIMEOUT).is_ok:
            return self._abort(command, counted=True)

        if not protocol.wait_for_data("CONNECT OK", CONNECT_TIMEOUT).is_data:
            return self._abort("CONNECT OK")

        protocol.send("AT+CIPSEND")
        protocol.pause(ARM_SEND_DELAY_MS)

        state.website_connected = True
        logger.info(f"Connected to {config.web_host}:{config.web_port}")
        return True

    def _parse_registered(self, line: str) -> bool:
        try:
            return self._cgreg_parser.parse(line).is_registered
        except ATParseError as e:
            logger.warning(f"Unparseable GPRS registration status: {e}")
            self.modem.protocol_error("AT+CGREG?")
            return False

    def _parse_attached(self, line: str) -> bool:
        try:
            return self._cgatt_parser.parse(line)
        except ATParseError as e:
            logger.warning(f"Unparseable GPRS attach state: {e}")
            self.modem.protocol_error("AT+CGATT?")
            return False

    def _abort(self, step: str, counted: bool = False) -> bool:
        logger.error(f"Web submission failed at {step}")
        if counted:
            self.modem.protocol_error(step)
        else:
            self.modem.state.last_error = ErrorKind.TIMEOUT
        self._reset_gprs()
        return False

    def send_payload(self, data: Union[bytes, str]) -> int:
        """
        Stream request bytes into the open socket.

        Args:
            data: Payload; str is encoded as latin-1

        Returns:
            Number of bytes written (0 if not connected)
        """
        with self.modem.exclusive("send_payload"):
            if not self.modem.state.website_connected:
                logger.warning("send_payload called without an open connection")
                return 0

            if isinstance(data, str):
                data = data.encode("latin-1")
            return self.modem.protocol.write_raw(data)

    def complete(self) -> bool:
        """
        Finish the submission and wait for the server's acknowledgement.

        Returns:
            True only if the server replied with the configured success
            token and the IP stack shut down cleanly
        """
        with self.modem.exclusive("complete"):
            return self._complete()

    def _complete(self) -> bool:
        state = self.modem.state
        if not state.initialised:
            return False
        if not state.website_connected:
            logger.warning("complete called without an open connection")
            return False

        config = self.modem.config
        protocol = self.modem.protocol
        state.website_connected = False

        protocol.send("")
        protocol.send("")
        protocol.send(CTRL_Z)

        if not protocol.wait_for_data("SEND OK", SEND_TIMEOUT).is_data:
            return self._abort("SEND OK", counted=True)

        accepted = True
        ack = protocol.wait_for_data(config.web_ack_prefix, ACK_TIMEOUT)
        if ack.is_data:
            if config.web_ack_success not in ack.line:
                logger.warning(f"Server rejected submission: {ack.line}")
                accepted = False
        else:
            logger.warning("No acknowledgement from server")
            accepted = False

        if ack.kind is not ResponseKind.TIMEOUT:
            if not protocol.wait_for_data("CLOSED", CLOSED_TIMEOUT).is_data:
                return self._abort("CLOSED", counted=True)

        protocol.send("AT+CIPCLOSE")
        protocol.wait_for_status(CLOSE_TIMEOUT)

        protocol.send("AT+CIPSHUT")
        if not protocol.wait_for_data("SHUT OK", SHUT_TIMEOUT).is_data:
            return self._abort("AT+CIPSHUT", counted=True)

        logger.info(f"Web submission {'accepted' if accepted else 'rejected'}")
        return accepted

    def reset_gprs(self) -> None:
        """Shut down any PDP context and cycle the radio."""
        with self.modem.exclusive("reset_gprs"):
            if not self.modem.state.initialised:
                return
            self._reset_gprs()

    def _reset_gprs(self) -> None:
        logger.info("Resetting GPRS")
        self.modem.state.website_connected = False
        protocol = self.modem.protocol
        protocol.send("AT+CIPSHUT")
        protocol.wait_for_data("SHUT OK", SHUT_TIMEOUT)
        self.modem.radio_cycle()
