"""
Exceptions for sim800py.

Operational modem failures (timeouts, ERROR replies, missing SIM) are reported
as results and session state, never raised. The exceptions below cover
hardware, parsing and programming errors.
"""

from typing import Optional


class SIM800Error(Exception):
    """
    Base exception for SIM800 driver errors.

    All sim800py exceptions inherit from this class.
    """

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        response: Optional[list[str]] = None
    ) -> None:
        """
        Initialize exception with context.

        Args:
            message: Error description
            command: AT command that caused the error (if applicable)
            response: Modem response (if applicable)
        """
        self.command = command
        self.response = response
        super().__init__(message)

    def __str__(self) -> str:
        """Format error message with context."""
        parts = [super().__str__()]

        if self.command:
            parts.append(f"Command: {self.command}")

        if self.response:
            parts.append(f"Response: {self.response}")

        return " | ".join(parts)


class ATParseError(SIM800Error):
    """
    Raised when a response line cannot be parsed.

    Feature managers catch this and count it as a protocol error.
    """
    pass


class TransportError(SIM800Error):
    """
    Raised when the transport layer fails.

    This indicates:
    - Serial port cannot be opened
    - Read or write failure
    - Modem control line failure
    """
    pass


class DeviceDisconnectedError(TransportError):
    """
    Raised when the device is gone (or the transport was closed).

    Requires closing and reopening the connection.
    """
    pass


class ConfigError(SIM800Error):
    """Raised when a ModemConfig value is out of range."""
    pass


class ReentrantCallError(SIM800Error):
    """
    Raised when a driver operation is started while another one is running.

    The driver is not reentrant: the idle callback and URC callbacks must
    never call back into it.
    """
    pass
