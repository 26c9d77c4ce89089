"""
Call manager.

Places outbound voice calls and disposes of inbound ones.
"""

import logging
from typing import TYPE_CHECKING, Optional

from ..core.clock import elapsed_ms
from ..core.retry import RetryPolicy
from ..parsers.network import CallStatusParser
from ..exceptions import ATParseError
from ..types import CallState, CallStatus, ResponseKind

if TYPE_CHECKING:
    from ..core import ModemCore

logger = logging.getLogger(__name__)

DIAL_TIMEOUT = 20.0
HANGUP_TIMEOUT = 20.0
CLCC_TIMEOUT = 5.0
ESTABLISH_WAIT = 1.0


def call_outcome(status: int) -> Optional[bool]:
    """
    Map an AT+CLCC status code onto the outcome of an outbound call.

    Args:
        status: <stat> field of a +CLCC line

    Returns:
        True (complete, successful), False (complete, failed) or None
        (still in progress, keep polling)
    """
    if status in (CallStatus.ACTIVE, CallStatus.HELD, CallStatus.DISCONNECTED):
        return True
    if status in (CallStatus.INCOMING, CallStatus.WAITING):
        return False
    return None


class CallManager:
    """
    Manages voice calls.

    Outbound: ``dial`` runs IDLE -> DIALING -> CONNECTING -> ACTIVE/FAILED ->
    HUNG_UP. Inbound calls are never answered; ``service_inbound`` hangs them
    up once the ring has been pending long enough and records the caller.
    """

    def __init__(self, modem_core: "ModemCore") -> None:
        """
        Initialize call manager.

        Args:
            modem_core: ModemCore instance for AT command execution
        """
        self.modem = modem_core
        self._clcc_parser = CallStatusParser()
        self.state = CallState.IDLE

        config = modem_core.config
        self._poll_policy = RetryPolicy(
            attempt_timeout=CLCC_TIMEOUT,
            deadline_ms=config.call_poll_deadline_ms,
            interval_ms=config.call_poll_interval_ms
        )

        logger.debug("Initialized CallManager")

    @property
    def call_received(self) -> bool:
        """True once an inbound call has been hung up and its caller stored."""
        return self.modem.call_record.call_received

    @property
    def caller_id(self) -> str:
        """
        Caller id of the last inbound call.

        Stored without the surrounding quotes of the +CLIP line (e.g.
        "+441234567890"), or "UNKNOWN" if the number was withheld.
        """
        return self.modem.call_record.caller_id

    def clear_caller_id(self) -> None:
        """Acknowledge the last inbound call."""
        self.modem.call_record.clear_caller_id()

    def dial(self, number: str) -> bool:
        """
        Call a number, wait for it to connect, then hang up.

        Args:
            number: Destination number (e.g., "+441234567890")

        Returns:
            True if the call connected (or completed) and was hung up cleanly

        Example:

        .. code-block:: python

            if modem.call.dial("+441234567890"):
                print("Call connected")
        """
        with self.modem.exclusive("dial"):
            return self._dial(number)

    def _dial(self, number: str) -> bool:
        if not self.modem.state.initialised:
            return False

        protocol = self.modem.protocol
        protocol.wake()

        logger.info(f"Dialling {number}")
        self.state = CallState.DIALING
        protocol.send(f"ATD{number};")

        if not protocol.wait_for_status(DIAL_TIMEOUT).is_ok:
            logger.error(f"Call to {number} could not be initiated")
            protocol.send("ATH")
            protocol.wait_for_status(HANGUP_TIMEOUT)
            self.state = CallState.FAILED
            return False

        protocol.wait_for_status(ESTABLISH_WAIT)
        self.state = CallState.CONNECTING

        successful = False
        for _ in self._poll_policy.attempts(self.modem.clock, self.modem.idle, self.modem.config.poll_interval_ms):
            outcome = self._poll_call_status()
            if outcome is not None:
                successful = outcome
                break

        self.state = CallState.ACTIVE if successful else CallState.FAILED

        protocol.send("ATH")
        if not protocol.wait_for_status(HANGUP_TIMEOUT).is_ok:
            self.modem.protocol_error("ATH")
            successful = False

        self.state = CallState.HUNG_UP
        logger.info(f"Call to {number} {'succeeded' if successful else 'failed'}")
        return successful

    def _poll_call_status(self) -> Optional[bool]:
        protocol = self.modem.protocol
        protocol.send("AT+CLCC")

        response = protocol.wait_for_data("+CLCC:", CLCC_TIMEOUT)
        if response.kind is ResponseKind.OK:
            return True
        if response.kind is ResponseKind.ERROR:
            self.modem.protocol_error("AT+CLCC")
            return False
        if response.kind is ResponseKind.TIMEOUT:
            return None

        outcome = None
        try:
            entry = self._clcc_parser.parse(response.line)
            outcome = call_outcome(entry.status)
            logger.debug(f"Call status: {entry.status}")
        except ATParseError as e:
            logger.warning(f"Unparseable call status: {e}")
            self.modem.protocol_error("AT+CLCC")

        protocol.wait_for_terminal(response, CLCC_TIMEOUT)
        return outcome

    def service_inbound(self) -> bool:
        """
        Hang up an inbound call whose ring has been pending too long.

        Called from the periodic refresh.

        Returns:
            True if a call was hung up
        """
        record = self.modem.call_record
        if not record.ring_pending:
            return False

        age = elapsed_ms(self.modem.clock.now_ms(), record.ring_started_ms)
        if age <= self.modem.config.ring_hangup_ms:
            return False

        self.modem.protocol.send("ATH")
        if not self.modem.protocol.wait_for_status(HANGUP_TIMEOUT).is_ok:
            logger.warning("Hang-up of inbound call not acknowledged, will retry")
            return False

        record.ring_started_ms = None
        record.call_received = True
        logger.info(f"Inbound call from {record.caller_id} hung up")
        return True
