"""
SMS response parsers.

Parses text-mode +CMGL headers and +CUSD replies, and carries the UCS2
heuristic used for carriers that deliver text-mode messages as hex quads.
"""

import logging
from typing import Optional

from .base import ResponseParser, unquote
from ..exceptions import ATParseError
from ..types import SMSHeader

logger = logging.getLogger(__name__)

HEX_DIGITS = "0123456789ABCDEFabcdef"
UCS2_MIN_LENGTH = 14
UCS2_SCAN_WINDOW = 8


class SMSListParser(ResponseParser[SMSHeader]):
    """Parser for a text-mode AT+CMGL header row."""

    prefix = "+CMGL: "

    def __init__(self, max_sender_len: int = 20) -> None:
        self.max_sender_len = max_sender_len

    def parse(self, line: str) -> SMSHeader:
        """
        Parse AT+CMGL header.

        Expected format:
            +CMGL: 1,"REC UNREAD","+447881554465","","19/04/23,15:17:24+04"
        """
        parts = self.fields(line, 3)

        index = parts[0].strip()
        if not index:
            raise ATParseError("Missing message index", command='AT+CMGL="ALL"', response=[line])

        timestamp = unquote(",".join(parts[4:])) if len(parts) > 4 else None

        return SMSHeader(
            index=index,
            status=unquote(parts[1]),
            sender=unquote(parts[2])[:self.max_sender_len],
            timestamp=timestamp or None
        )


class USSDParser(ResponseParser[str]):
    """Parser for +CUSD replies; returns the first quoted string."""

    prefix = "+CUSD:"

    def parse(self, line: str) -> str:
        """
        Parse +CUSD response.

        Expected format: '+CUSD: 0,"Your balance is 5.00",15'
        """
        start = line.find(self.prefix)
        if start < 0:
            raise ATParseError("Not a +CUSD line", response=[line])

        quote_start = line.find('"', start)
        if quote_start < 0:
            raise ATParseError("No quoted text in +CUSD line", response=[line])

        quote_end = line.find('"', quote_start + 1)
        if quote_end < 0:
            return line[quote_start + 1:]
        return line[quote_start + 1:quote_end]


def sender_suggests_ucs2(sender: str) -> bool:
    """
    Guess whether a sender's messages may arrive UCS2 hex encoded.

    Senders that do not start with '+' or '0' (alphanumeric originators such
    as carrier short names) are candidates.
    """
    return not sender or sender[0] not in "+0"


def find_ucs2_offset(body: str) -> Optional[int]:
    """
    Locate the start of a UCS2 hex-quad run.

    Scans the first 8 characters for "00XY00ZW" with X and Z not '0'.

    Returns:
        Offset of the first quad, or None
    """
    if len(body) < UCS2_MIN_LENGTH:
        return None

    for idx in range(UCS2_SCAN_WINDOW):
        if (body[idx:idx + 2] == "00" and body[idx + 2] != "0"
                and body[idx + 4:idx + 6] == "00" and body[idx + 6] != "0"):
            return idx
    return None


def decode_ucs2_quads(body: str, offset: int) -> str:
    """
    Decode 4-character hex quads starting at ``offset`` into single characters.

    Only quads of the form "00XY" (X, Y hex digits) decode; any other quad
    becomes '*'. Trailing characters that do not fill a quad are dropped.
    """
    quad_count = (len(body) - offset) // 4
    decoded = []

    for idx in range(quad_count):
        quad = body[offset + idx * 4:offset + idx * 4 + 4]
        if quad[:2] == "00" and quad[2] in HEX_DIGITS and quad[3] in HEX_DIGITS:
            decoded.append(chr(int(quad[2:], 16)))
        else:
            decoded.append("*")

    return "".join(decoded)


def decode_sms_body(sender: str, body: str) -> tuple[str, bool]:
    """
    Apply the UCS2 heuristic to a fetched message body.

    This is best effort for one carrier's hex-encoded text-mode messages, not
    a general UCS2 decoder.

    Args:
        sender: Originator of the message (unquoted)
        body: Message body as listed by AT+CMGL

    Returns:
        Tuple of (text, decoded) where decoded tells whether the heuristic fired
    """
    if not sender_suggests_ucs2(sender):
        return body, False

    offset = find_ucs2_offset(body)
    if offset is None:
        return body, False

    text = decode_ucs2_quads(body, offset)
    logger.debug(f"Decoded UCS2 body from {sender} at offset {offset}: {text!r}")
    return text, True
