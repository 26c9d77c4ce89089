"""
Base parser classes and utilities.

Provides the bounded CSV tokenizer that every response parser builds on.
"""

import logging
from abc import ABC, abstractmethod
from typing import TypeVar, Generic

from ..exceptions import ATParseError

logger = logging.getLogger(__name__)

T = TypeVar('T')

MAX_FIELDS = 16


def split_fields(line: str, prefix: str = "", max_fields: int = MAX_FIELDS) -> list[str]:
    """
    Split the comma-separated payload of a response line.

    The payload starts right after the first occurrence of ``prefix`` (or at
    the start of the line if no prefix is given). At most ``max_fields``
    fields are produced; the last one keeps any remaining commas.

    Args:
        line: Response line (e.g., '+CMGL: 1,"REC UNREAD","+4478",...')
        prefix: Text preceding the payload (e.g., "+CMGL: ")
        max_fields: Upper bound on returned fields

    Returns:
        Field strings, quotes preserved; empty list if prefix is missing
    """
    if prefix:
        start = line.find(prefix)
        if start < 0:
            return []
        payload = line[start + len(prefix):]
    else:
        payload = line

    return payload.split(",", max_fields - 1)


def unquote(field: str) -> str:
    """Strip whitespace and one pair of surrounding double quotes."""
    field = field.strip()
    if len(field) >= 2 and field[0] == '"' and field[-1] == '"':
        return field[1:-1]
    return field


class ResponseParser(ABC, Generic[T]):
    """
    Abstract base class for response parsers.

    Parsers convert one response line into a typed data structure.
    """

    prefix: str = ""

    @abstractmethod
    def parse(self, line: str) -> T:
        """
        Parse a response line.

        Args:
            line: Line from the modem

        Returns:
            Parsed data structure

        Raises:
            ATParseError: If the line cannot be parsed
        """
        pass

    def fields(self, line: str, expected: int, max_fields: int = MAX_FIELDS) -> list[str]:
        """
        Tokenize ``line`` after this parser's prefix.

        Raises:
            ATParseError: If the prefix is missing or fewer than ``expected``
                fields are present
        """
        parts = split_fields(line, self.prefix, max_fields)
        if len(parts) < expected:
            raise ATParseError(
                f"Expected {expected} fields after {self.prefix!r}, got {len(parts)}",
                response=[line]
            )
        return parts


def parse_int(value: str, line: str) -> int:
    """Parse an integer field, raising ATParseError with the source line."""
    try:
        return int(value.strip())
    except ValueError as e:
        raise ATParseError(f"Failed to parse integer: {value!r}", response=[line]) from e
