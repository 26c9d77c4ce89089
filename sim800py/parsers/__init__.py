"""
Response parsers for AT command responses.

Provides type-safe parsing of modem response lines into structured data.
"""

from .base import ResponseParser, split_fields, unquote, parse_int
from .network import (
    SignalQualityParser,
    RegistrationStatusParser,
    GprsAttachParser,
    CallStatusParser
)
from .sms import SMSListParser, USSDParser, decode_sms_body

__all__ = [
    "ResponseParser",
    "split_fields",
    "unquote",
    "parse_int",
    "SignalQualityParser",
    "RegistrationStatusParser",
    "GprsAttachParser",
    "CallStatusParser",
    "SMSListParser",
    "USSDParser",
    "decode_sms_body",
]
