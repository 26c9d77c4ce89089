"""
Network and call response parsers.

Parses +CSQ, +CREG/+CGREG, +CGATT and +CLCC lines.
"""

import logging

from .base import ResponseParser, parse_int, unquote
from ..types import CallListEntry, RegistrationStatus, SignalQuality

logger = logging.getLogger(__name__)


class SignalQualityParser(ResponseParser[SignalQuality]):
    """Parser for AT+CSQ (signal quality) response."""

    prefix = "+CSQ: "

    def parse(self, line: str) -> SignalQuality:
        """
        Parse AT+CSQ response.

        Expected format: "+CSQ: 18,0"
        """
        rssi_str, ber_str = self.fields(line, 2, max_fields=2)
        return SignalQuality(rssi=parse_int(rssi_str, line), ber=parse_int(ber_str, line))


class RegistrationStatusParser(ResponseParser[RegistrationStatus]):
    """Parser for AT+CREG? / AT+CGREG? (registration status) response."""

    def __init__(self, prefix: str = "+CREG: ") -> None:
        self.prefix = prefix

    def parse(self, line: str) -> RegistrationStatus:
        """
        Parse a registration status line.

        Expected formats:
            "+CREG: 0,1"
            "+CGREG: 2,5,\"1234\",\"5678\""
        """
        parts = self.fields(line, 2)
        return RegistrationStatus(n=parse_int(parts[0], line), stat=parse_int(parts[1], line))


class GprsAttachParser(ResponseParser[bool]):
    """Parser for AT+CGATT? response ("+CGATT: 1")."""

    prefix = "+CGATT: "

    def parse(self, line: str) -> bool:
        (state,) = self.fields(line, 1, max_fields=1)
        return parse_int(state, line) == 1


class CallStatusParser(ResponseParser[CallListEntry]):
    """Parser for AT+CLCC (current calls) response."""

    prefix = "+CLCC: "

    def parse(self, line: str) -> CallListEntry:
        """
        Parse AT+CLCC response.

        Expected format: '+CLCC: 1,0,2,0,0,"+441234567890",145'
        """
        parts = self.fields(line, 5)
        return CallListEntry(
            index=parse_int(parts[0], line),
            direction=parse_int(parts[1], line),
            status=parse_int(parts[2], line),
            mode=parse_int(parts[3], line),
            multiparty=parse_int(parts[4], line),
            number=unquote(parts[5]) if len(parts) > 5 else None
        )
