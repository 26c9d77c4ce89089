"""
sim800py - Python driver for SIM800 cellular modems.
"""

from .version import __version__
from .modem import SIM800Modem
from .config import ModemConfig

from .types import (
    Response,
    ResponseKind,
    FramingState,
    ErrorKind,
    URCKind,
    SignalQuality,
    RegistrationStatus,
    RegistrationState,
    CallStatus,
    CallState,
    SMSMessage,
    SessionState,
)

from .exceptions import (
    SIM800Error,
    ATParseError,
    TransportError,
    DeviceDisconnectedError,
    ConfigError,
    ReentrantCallError,
)

__all__ = [
    "__version__",
    "SIM800Modem",
    "ModemConfig",
    "Response",
    "ResponseKind",
    "FramingState",
    "ErrorKind",
    "URCKind",
    "SignalQuality",
    "RegistrationStatus",
    "RegistrationState",
    "CallStatus",
    "CallState",
    "SMSMessage",
    "SessionState",
    "SIM800Error",
    "ATParseError",
    "TransportError",
    "DeviceDisconnectedError",
    "ConfigError",
    "ReentrantCallError",
]
