"""
Unsolicited Result Code (URC) interpreter.

Acts on the URCs the driver models (incoming call, new SMS, modem reboot,
socket closed), keeps a bounded history and dispatches host callbacks.
"""

import logging
from collections import deque
from typing import Callable, Dict, Deque, Optional

from .clock import Clock
from ..parsers.base import split_fields, unquote
from ..types import CallRecord, ErrorKind, SessionState, URCKind

logger = logging.getLogger(__name__)

# Type alias for URC callbacks
URCCallback = Callable[[str], None]

CLIP_PREFIX = "+CLIP: "
CMTI_SIM_PREFIX = '+CMTI: "SM"'
READY_BANNERS = ("SMS Ready", "Call Ready")
CLOSED = "CLOSED"
UNKNOWN_CALLER = "UNKNOWN"


class URCInterpreter:
    """
    Interprets lines that arrive outside an awaited reply.

    Features:
    - Incoming call capture (+CLIP) with caller id
    - Reboot detection from ready banners once initialised
    - Socket closure tracking for the web session
    - Bounded history and prefix callbacks for the host
    """

    def __init__(
        self,
        state: SessionState,
        call: CallRecord,
        clock: Clock,
        max_caller_id_len: int = 20,
        max_history: int = 100,
        log_urcs: bool = False
    ) -> None:
        """
        Initialize URC interpreter.

        Args:
            state: Session state to update
            call: Inbound call record to update
            clock: Clock used to timestamp rings
            max_caller_id_len: Bound on stored caller ids
            max_history: Maximum number of URCs to remember
            log_urcs: Whether to log URCs at INFO level
        """
        self.state = state
        self.call = call
        self.clock = clock
        self.max_caller_id_len = max_caller_id_len
        self.log_urcs = log_urcs

        self._history: Deque[str] = deque(maxlen=max_history)
        self._callbacks: Dict[str, URCCallback] = {}

        logger.info(f"Initialized URC interpreter (max_history={max_history})")

    def register_callback(self, prefix: str, callback: URCCallback) -> None:
        """
        Register a callback for lines starting with a prefix.

        Callbacks run inside driver operations and must not call back into
        the driver.

        Args:
            prefix: Line prefix to match (e.g., "+CMTI")
            callback: Function to call with the line

        Example:

        .. code-block:: python

            interpreter.register_callback("+CMTI", lambda line: print(f"New SMS: {line}"))
        """
        self._callbacks[prefix] = callback
        logger.info(f"Registered URC callback for prefix: {prefix}")

    def unregister_callback(self, prefix: str) -> bool:
        """
        Unregister a URC callback.

        Returns:
            True if callback was removed, False if not found
        """
        if prefix in self._callbacks:
            del self._callbacks[prefix]
            logger.info(f"Unregistered URC callback for prefix: {prefix}")
            return True
        return False

    def handle(self, line: str) -> Optional[URCKind]:
        """
        Interpret one line.

        Checked in priority order: incoming call, new SMS, reboot banner,
        connection closed. Anything else is ignored.

        Args:
            line: Line read from the modem

        Returns:
            The kind of URC acted on, or None
        """
        if self.log_urcs:
            logger.info(f"URC received: {line}")
        else:
            logger.debug(f"URC received: {line}")

        self._history.append(line)
        kind = self._interpret(line)
        self._dispatch_callbacks(line)
        return kind

    __call__ = handle

    def _interpret(self, line: str) -> Optional[URCKind]:
        if CLIP_PREFIX in line:
            if not self.call.ring_pending:
                self.call.ring_started_ms = self.clock.now_ms()
                self.call.caller_id = self._caller_id_from_clip(line)
                logger.info(f"Incoming call from {self.call.caller_id}")
            return URCKind.INCOMING_CALL

        if CMTI_SIM_PREFIX in line:
            logger.info("New SMS stored on SIM")
            return URCKind.NEW_SMS

        if self.state.initialised and any(banner in line for banner in READY_BANNERS):
            self.state.reset_count += 1
            self.state.initialised = False
            self.state.last_error = ErrorKind.MODEM_REBOOTED
            logger.warning(f"Modem rebooted unexpectedly ({line}), reset count {self.state.reset_count}")
            return URCKind.MODEM_REBOOT

        if CLOSED in line:
            if self.state.website_connected:
                logger.info("Remote closed the TCP connection")
            self.state.website_connected = False
            return URCKind.CONNECTION_CLOSED

        return None

    def _caller_id_from_clip(self, line: str) -> str:
        fields = split_fields(line, CLIP_PREFIX, max_fields=2)
        caller_id = unquote(fields[0]) if fields else ""
        if not caller_id:
            return UNKNOWN_CALLER
        return caller_id[:self.max_caller_id_len]

    def _dispatch_callbacks(self, line: str) -> None:
        callbacks_to_call = [
            (prefix, cb) for prefix, cb in self._callbacks.items()
            if line.startswith(prefix)
        ]

        for prefix, callback in callbacks_to_call:
            try:
                callback(line)
                logger.debug(f"URC callback for '{prefix}' executed successfully")
            except Exception as e:
                logger.error(f"URC callback for '{prefix}' failed: {e}", exc_info=True)

    def history(self) -> list[str]:
        """
        Get a copy of recently interpreted lines.

        Returns:
            List of lines (oldest first)
        """
        return list(self._history)

    def clear_history(self) -> int:
        """
        Clear the URC history.

        Returns:
            Number of lines that were cleared
        """
        count = len(self._history)
        self._history.clear()
        return count

    def get_callbacks(self) -> Dict[str, URCCallback]:
        """Get registered callbacks (for debugging)."""
        return dict(self._callbacks)
