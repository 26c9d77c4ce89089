"""
Core modem infrastructure.

Provides low-level building blocks for modem communication:
- Transport: Byte stream abstraction (serial or scripted mock) and reset line
- Clock: Millisecond time source and rate-limit cache
- LineReader: Byte-to-line framing
- Protocol: Command channel and response classification
- URC: Unsolicited result code interpretation
- ModemCore: Bring-up, refresh and session state
"""

from .clock import Clock, MonotonicClock, ManualClock, PollCache, elapsed_ms
from .transport import (
    Transport,
    SerialTransport,
    MockTransport,
    ResetLine,
    NullResetLine,
    SerialResetLine,
    MockResetLine
)
from .reader import LineReader
from .retry import RetryPolicy
from .protocol import ATProtocol, CTRL_Z
from .urc import URCInterpreter, URCCallback
from .modem import ModemCore

__all__ = [
    "Clock",
    "MonotonicClock",
    "ManualClock",
    "PollCache",
    "elapsed_ms",
    "Transport",
    "SerialTransport",
    "MockTransport",
    "ResetLine",
    "NullResetLine",
    "SerialResetLine",
    "MockResetLine",
    "LineReader",
    "RetryPolicy",
    "ATProtocol",
    "CTRL_Z",
    "URCInterpreter",
    "URCCallback",
    "ModemCore",
]
