"""
Data types and structures for sim800py.

Provides type-safe representations of modem replies and driver state.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional


class FramingState(Enum):
    """Line Reader framing state."""
    IDLE = "idle"
    WAITING = "waiting"
    LINE_READY = "line_ready"
    OVERFLOW_RECOVERED = "overflow_recovered"


class ResponseKind(Enum):
    """Outcome of a Response Classifier wait."""
    OK = "ok"
    ERROR = "error"
    DATA = "data"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class Response:
    """
    Classified reply to a command.

    ``line`` holds the text of the line that ended the wait (None on timeout).
    """
    kind: ResponseKind
    line: Optional[str] = None

    @property
    def is_ok(self) -> bool:
        return self.kind is ResponseKind.OK

    @property
    def is_data(self) -> bool:
        return self.kind is ResponseKind.DATA

    @property
    def is_timeout(self) -> bool:
        return self.kind is ResponseKind.TIMEOUT


class ErrorKind(Enum):
    """Failure taxonomy recorded on the session state."""
    TIMEOUT = "timeout"
    PROTOCOL_ERROR = "protocol_error"
    RESOURCE_ABSENT = "resource_absent"
    MODEM_REBOOTED = "modem_rebooted"
    REGISTRATION_DENIED = "registration_denied"


class URCKind(Enum):
    """Unsolicited result codes the driver acts on."""
    INCOMING_CALL = "incoming_call"
    NEW_SMS = "new_sms"
    MODEM_REBOOT = "modem_reboot"
    CONNECTION_CLOSED = "connection_closed"


class RegistrationState(IntEnum):
    """Network registration status values (+CREG / +CGREG <stat>)."""
    NOT_REGISTERED = 0
    REGISTERED_HOME = 1
    SEARCHING = 2
    DENIED = 3
    UNKNOWN = 4
    REGISTERED_ROAMING = 5


class CallStatus(IntEnum):
    """Call state reported by AT+CLCC."""
    ACTIVE = 0
    HELD = 1
    DIALING = 2
    ALERTING = 3
    INCOMING = 4
    WAITING = 5
    DISCONNECTED = 6


class CallState(Enum):
    """Outbound call controller state."""
    IDLE = "idle"
    DIALING = "dialing"
    CONNECTING = "connecting"
    ACTIVE = "active"
    FAILED = "failed"
    HUNG_UP = "hung_up"


@dataclass
class SignalQuality:
    """
    Signal quality from AT+CSQ.

    RSSI (Received Signal Strength Indicator):
        0: -113 dBm or less
        1: -111 dBm
        2...30: -109 to -53 dBm
        31: -51 dBm or greater
        99: Not known or not detectable
    """
    rssi: int
    ber: int = 99

    @property
    def is_valid(self) -> bool:
        """Check if signal quality reading is usable."""
        return self.rssi not in (0, 99)

    @property
    def rssi_dbm(self) -> Optional[int]:
        """Convert RSSI to dBm value."""
        if self.rssi == 99:
            return None
        return -113 + (self.rssi * 2)

    @property
    def bars(self) -> int:
        """Signal strength as 0-4 bars."""
        if not self.is_valid:
            return 0
        if self.rssi < 10:
            return 1
        if self.rssi < 15:
            return 2
        if self.rssi < 20:
            return 3
        return 4

    @property
    def percent(self) -> int:
        """Signal strength as a 0-100 percentage of the RSSI scale."""
        if not self.is_valid:
            return 0
        return (self.rssi * 100) // 31


@dataclass
class RegistrationStatus:
    """
    Network registration status from AT+CREG? or AT+CGREG?

    Attributes:
        n: Reporting mode
        stat: Registration status (see RegistrationState enum)
    """
    n: int
    stat: int

    @property
    def is_registered(self) -> bool:
        """Check if registered to network (home or roaming)."""
        return self.stat in (
            RegistrationState.REGISTERED_HOME,
            RegistrationState.REGISTERED_ROAMING
        )

    @property
    def is_denied(self) -> bool:
        return self.stat == RegistrationState.DENIED


@dataclass
class CallListEntry:
    """One +CLCC line."""
    index: int
    direction: int
    status: int
    mode: int
    multiparty: int
    number: Optional[str] = None


@dataclass
class SMSHeader:
    """Header row of a text-mode +CMGL listing."""
    index: str
    status: str
    sender: str
    timestamp: Optional[str] = None


@dataclass
class SMSMessage:
    """A fetched SMS message."""
    index: str
    sender: str
    content: str
    status: Optional[str] = None
    timestamp: Optional[str] = None
    ucs2_decoded: bool = False


@dataclass
class SessionState:
    """
    Driver-wide flags and counters.

    Owned by ModemCore. ``protocol_error_count`` and ``reset_count`` only ever
    grow.
    """
    initialised: bool = False
    sim_present: bool = True
    registration_denied: bool = False
    protocol_error_count: int = 0
    reset_count: int = 0
    signal_rssi: int = 0
    website_connected: bool = False
    last_error: Optional[ErrorKind] = None


@dataclass
class CallRecord:
    """Inbound call bookkeeping."""
    ring_started_ms: Optional[int] = None
    caller_id: str = ""
    call_received: bool = False

    @property
    def ring_pending(self) -> bool:
        return self.ring_started_ms is not None

    def clear_caller_id(self) -> None:
        self.call_received = False
        self.caller_id = ""

