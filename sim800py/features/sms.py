"""
SMS manager.

Handles SMS listing, fetching, deleting and sending in text mode, plus the
USSD balance query whose reply lands in the same buffer.
"""

import logging
from typing import TYPE_CHECKING, Optional

from ..core.clock import PollCache
from ..core.protocol import CTRL_Z
from ..core.retry import RetryPolicy
from ..parsers.sms import SMSListParser, USSDParser, decode_sms_body
from ..exceptions import ATParseError
from ..types import ResponseKind, SMSMessage

if TYPE_CHECKING:
    from ..core import ModemCore

logger = logging.getLogger(__name__)

LIST_COMMAND = 'AT+CMGL="ALL"'
LIST_TIMEOUT = 20.0
DELETE_TIMEOUT = 10.0
SEND_TIMEOUT = 60.0
USSD_ACCEPT_TIMEOUT = 20.0
USSD_REPLY_TIMEOUT = 60.0


class SMSBuffer:
    """
    Single bounded text buffer holding one message body at a time.

    Used both for staging an outgoing message and for the most recently
    fetched one. Text beyond ``capacity`` characters is dropped.
    """

    def __init__(self, capacity: int = 162) -> None:
        self.capacity = capacity
        self._text = ""

    @property
    def text(self) -> str:
        return self._text

    def write(self, text: str) -> str:
        """Replace the contents, truncating to capacity. Returns what was stored."""
        if len(text) > self.capacity:
            logger.warning(f"SMS text of {len(text)} chars truncated to {self.capacity}")
        self._text = text[:self.capacity]
        return self._text

    def clear(self) -> None:
        self._text = ""

    def __len__(self) -> int:
        return len(self._text)

    def __bool__(self) -> bool:
        return bool(self._text)


class SMSManager:
    """
    Manages SMS operations.

    The caller owns the buffer lifecycle: clear, write, then
    ``send_from_buffer``; or ``fetch_pending``, read, ``delete``, then clear.
    """

    def __init__(self, modem_core: "ModemCore") -> None:
        """
        Initialize SMS manager.

        Args:
            modem_core: ModemCore instance for AT command execution
        """
        self.modem = modem_core
        config = modem_core.config

        self.buffer = SMSBuffer(config.tx_buffer_size)
        self._list_parser = SMSListParser(max_sender_len=config.max_caller_id_len)
        self._ussd_parser = USSDParser()

        self._availability = PollCache(config.sms_list_cooldown_ms, value=False)
        self._consecutive_failures = 0
        self._send_policy = RetryPolicy(max_attempts=config.sms_send_attempts, attempt_timeout=SEND_TIMEOUT)

        self.last_sender = ""

        logger.debug("Initialized SMSManager")

    def clear_buffer(self) -> None:
        """Empty the SMS buffer."""
        self.buffer.clear()

    def write_buffer(self, text: str) -> str:
        """
        Stage a message body for sending.

        Returns:
            The text actually stored (truncated to the buffer capacity)
        """
        return self.buffer.write(text)

    @property
    def text(self) -> str:
        """Contents of the SMS buffer."""
        return self.buffer.text

    def sms_available(self) -> bool:
        """
        Check whether the SIM holds any messages (rate limited).

        Consecutive failures of the listing command are taken as a sign the
        modem rebooted behind our back; at the configured limit the driver
        is marked uninitialised so the next refresh re-runs bring-up.

        Returns:
            True if at least one message is stored

        Example:

        .. code-block:: python

            if modem.sms.sms_available():
                message = modem.sms.fetch_pending()
        """
        with self.modem.exclusive("sms_available"):
            return self._poll_available()

    def _poll_available(self) -> bool:
        if not self.modem.state.initialised:
            return False

        now = self.modem.clock.now_ms()
        if not self._availability.is_due(now):
            return self._availability.value
        self._availability.mark(now)

        protocol = self.modem.protocol
        protocol.wake()
        protocol.send(LIST_COMMAND)

        response = protocol.wait_for_data("+CMGL:", LIST_TIMEOUT)
        if response.is_data:
            self._consecutive_failures = 0
            self._availability.value = True
            if not protocol.wait_for_status(LIST_TIMEOUT).is_ok:
                self.modem.protocol_error(LIST_COMMAND)
        elif response.is_ok:
            self._consecutive_failures = 0
            self._availability.value = False
        else:
            self.modem.protocol_error(LIST_COMMAND)
            self._availability.value = False
            self._consecutive_failures += 1
            if self._consecutive_failures >= self.modem.config.sms_list_failure_limit:
                self._consecutive_failures = 0
                self.modem.modem_rebooted(f"{LIST_COMMAND} failed repeatedly")

        logger.debug(f"SMS available: {self._availability.value}")
        return self._availability.value

    def fetch_pending(self) -> Optional[SMSMessage]:
        """
        Fetch the first stored message into the SMS buffer.

        The body is passed through the UCS2 heuristic decoder; see
        ``sim800py.parsers.sms.decode_sms_body``.

        Returns:
            SMSMessage (whose ``content`` is also in the buffer), or None if
            nothing is stored or the listing failed

        Example:

        .. code-block:: python

            message = modem.sms.fetch_pending()
            if message:
                print(f"From {message.sender}: {message.content}")
                modem.sms.delete(message.index)
                modem.sms.clear_buffer()
        """
        with self.modem.exclusive("fetch_pending"):
            return self._fetch_pending()

    def _fetch_pending(self) -> Optional[SMSMessage]:
        if not self.modem.state.initialised:
            return None

        protocol = self.modem.protocol
        protocol.wake()
        protocol.send(LIST_COMMAND)

        response = protocol.wait_for_data("+CMGL:", LIST_TIMEOUT)
        if response.is_ok:
            logger.debug("No stored SMS")
            return None
        if not response.is_data:
            self.modem.protocol_error(LIST_COMMAND)
            return None

        try:
            header = self._list_parser.parse(response.line)
        except ATParseError as e:
            logger.warning(f"Unparseable SMS header: {e}")
            self.modem.protocol_error(LIST_COMMAND)
            protocol.wait_for_status(LIST_TIMEOUT)
            return None

        self.last_sender = header.sender

        body = protocol.wait_for_data(None, LIST_TIMEOUT)
        if body.is_data:
            self.buffer.write(body.line)
        else:
            self.buffer.clear()

        content, decoded = decode_sms_body(header.sender, self.buffer.text)
        if decoded:
            self.buffer.write(content)

        if not protocol.wait_for_terminal(body, LIST_TIMEOUT).is_ok:
            self.modem.protocol_error(LIST_COMMAND)

        logger.info(f"Fetched SMS {header.index} from {header.sender}")
        return SMSMessage(
            index=header.index,
            sender=header.sender,
            content=self.buffer.text,
            status=header.status,
            timestamp=header.timestamp,
            ucs2_decoded=decoded
        )

    def delete(self, index: str) -> bool:
        """
        Delete a stored message.

        Args:
            index: Message index as reported by ``fetch_pending``

        Returns:
            True if the modem acknowledged the deletion
        """
        with self.modem.exclusive("delete"):
            if not self.modem.state.initialised:
                return False

            protocol = self.modem.protocol
            protocol.wake()
            protocol.send(f"AT+CMGD={index}")

            if not protocol.wait_for_status(DELETE_TIMEOUT).is_ok:
                self.modem.protocol_error(f"AT+CMGD={index}")
                return False

            logger.info(f"Deleted SMS {index}")
            return True

    def send_from_buffer(self, number: str) -> bool:
        """
        Send the SMS buffer to a number.

        Tried up to ``sms_send_attempts`` times. The buffer is cleared only
        on success.

        Args:
            number: Destination phone number (e.g., "+441234567890")

        Returns:
            True if the modem confirmed the submission

        Example:

        .. code-block:: python

            modem.sms.clear_buffer()
            modem.sms.write_buffer("Hello from SIM800")
            modem.sms.send_from_buffer("+441234567890")
        """
        with self.modem.exclusive("send_from_buffer"):
            return self._send_from_buffer(number)

    def _send_from_buffer(self, number: str) -> bool:
        if not self.modem.state.initialised:
            return False

        protocol = self.modem.protocol
        for attempt in self._send_policy.attempts(self.modem.clock, self.modem.idle, self.modem.config.poll_interval_ms):
            if self.modem.idle:
                self.modem.idle()

            protocol.wake()
            protocol.send(f'AT+CMGS="{number}"')
            protocol.send(self.buffer.text)
            protocol.send(CTRL_Z)

            if protocol.wait_for_status(self._send_policy.attempt_timeout).is_ok:
                self.buffer.clear()
                logger.info(f"SMS sent to {number} (attempt {attempt})")
                return True

            logger.warning(f"SMS to {number} not confirmed (attempt {attempt})")

        logger.error(f"Failed to send SMS to {number}")
        return False

    def fetch_balance(self) -> bool:
        """
        Run the balance USSD code and put the reply text in the SMS buffer.

        Returns:
            True if a +CUSD reply arrived
        """
        with self.modem.exclusive("fetch_balance"):
            if not self.modem.state.initialised:
                return False

            self.buffer.clear()

            protocol = self.modem.protocol
            protocol.wake()
            command = f"ATD{self.modem.config.balance_ussd};"
            protocol.send(command)

            if not protocol.wait_for_status(USSD_ACCEPT_TIMEOUT).is_ok:
                self.modem.protocol_error(command)
                return False

            response = protocol.wait_for_data("+CUSD:", USSD_REPLY_TIMEOUT)
            if response.kind is not ResponseKind.DATA:
                logger.warning(f"No USSD reply to {command}")
                return False

            try:
                self.buffer.write(self._ussd_parser.parse(response.line))
            except ATParseError as e:
                logger.warning(f"Unparseable USSD reply: {e}")
                return False

            logger.info(f"Balance: {self.buffer.text}")
            return True
