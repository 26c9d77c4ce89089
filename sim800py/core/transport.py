"""
Transport layer abstraction for modem communication.

Provides the byte stream and reset line the driver consumes, with pyserial
and scripted mock implementations.
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, Optional
import serial
from serial import SerialException

from ..exceptions import TransportError, DeviceDisconnectedError

logger = logging.getLogger(__name__)


class Transport(ABC):
    """Abstract base class for the modem byte stream."""

    @abstractmethod
    def available(self) -> int:
        """
        Number of bytes that can be read without blocking.

        Raises:
            TransportError: If the port cannot be queried
        """
        pass

    @abstractmethod
    def read_byte(self) -> Optional[int]:
        """
        Read one byte.

        Returns:
            Byte value, or None if nothing was available

        Raises:
            TransportError: If read fails
        """
        pass

    @abstractmethod
    def write(self, data: bytes) -> int:
        """
        Write data to the transport.

        Args:
            data: Bytes to write

        Returns:
            Number of bytes written

        Raises:
            TransportError: If write fails
        """
        pass

    @abstractmethod
    def is_open(self) -> bool:
        """Check if transport is open."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the transport."""
        pass


class SerialTransport(Transport):
    """Serial port transport implementation."""

    def __init__(
        self,
        port: str,
        baudrate: int = 115200,
        timeout: float = 0.1
    ) -> None:
        """
        Initialize serial transport.

        Args:
            port: Serial port path (e.g., /dev/ttyS0, /dev/ttyUSB0)
            baudrate: Baud rate for serial communication
            timeout: Read timeout in seconds

        Raises:
            TransportError: If serial port cannot be opened
        """
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout

        try:
            self._serial = serial.Serial(
                port=port,
                baudrate=baudrate,
                timeout=timeout
            )
            logger.info(f"Opened serial port {port} at {baudrate} baud")
        except SerialException as e:
            logger.error(f"Failed to open serial port {port}: {e}")
            raise TransportError(f"Failed to open serial port {port}: {e}") from e

    def available(self) -> int:
        try:
            return self._serial.in_waiting
        except (SerialException, OSError) as e:
            logger.error(f"Device disconnected: {e}")
            raise DeviceDisconnectedError(
                f"Serial device disconnected: {e}",
                response=[str(e)]
            ) from e

    def read_byte(self) -> Optional[int]:
        try:
            data = self._serial.read(1)
        except SerialException as e:
            logger.error(f"Serial read failed: {e}")
            raise TransportError(f"Serial read failed: {e}") from e
        return data[0] if data else None

    def write(self, data: bytes) -> int:
        """Write data to serial port."""
        try:
            written = self._serial.write(data)
            logger.debug(f"Wrote {written} bytes: {data!r}")
            return written
        except SerialException as e:
            logger.error(f"Serial write failed: {e}")
            raise TransportError(f"Serial write failed: {e}") from e

    def set_dtr(self, level: bool) -> None:
        """Drive the DTR modem control line."""
        try:
            self._serial.dtr = level
        except SerialException as e:
            raise TransportError(f"Failed to set DTR on {self.port}: {e}") from e

    def is_open(self) -> bool:
        """Check if serial port is open."""
        return bool(self._serial and self._serial.is_open)

    def close(self) -> None:
        """Close the serial port."""
        if self._serial and self._serial.is_open:
            self._serial.close()
            logger.info(f"Closed serial port {self.port}")


class MockTransport(Transport):
    """
    Mock transport for testing.

    Responses are scripted against commands: each queued response is released
    into the receive stream when the driver writes the command it is bound to,
    the way a real modem only answers after a command arrives.
    """

    def __init__(self) -> None:
        """Initialize mock transport."""
        self._open = True
        self._rx: Deque[int] = deque()
        self._tx_line = bytearray()
        self._script: Deque[tuple[Optional[str], list[str]]] = deque()
        self.written: list[bytes] = []
        self.commands: list[str] = []
        logger.info("Initialized MockTransport")

    def add_response(self, lines: list[str], command: Optional[str] = None) -> None:
        """
        Queue a response to be released after a command is written.

        Responses are consumed in order. A response bound to ``command`` waits
        until exactly that command is written; ``command=None`` matches the
        next non-empty command. An empty ``lines`` list consumes the command
        without answering, simulating a silent modem.

        Args:
            lines: Response lines (e.g., ["+CSQ: 18,0", "OK"])
            command: Command text that triggers the release
        """
        self._script.append((command, list(lines)))
        logger.debug(f"Added mock response for {command!r}: {lines}")

    def inject(self, lines: list[str]) -> None:
        """Make lines readable immediately, as unsolicited output."""
        for line in lines:
            self.inject_bytes(f"\r\n{line}\r\n".encode("latin-1"))

    def inject_bytes(self, data: bytes) -> None:
        """Make raw bytes readable immediately."""
        self._rx.extend(data)

    def available(self) -> int:
        self._check_open()
        return len(self._rx)

    def read_byte(self) -> Optional[int]:
        self._check_open()
        if not self._rx:
            return None
        return self._rx.popleft()

    def write(self, data: bytes) -> int:
        """Record written data and release any response it triggers."""
        self._check_open()
        logger.debug(f"Mock write: {data!r}")
        self.written.append(bytes(data))

        for byte in data:
            if byte == 0x0A:
                continue
            if byte == 0x0D:
                command = self._tx_line.decode("latin-1")
                self._tx_line.clear()
                if command:
                    self._on_command(command)
            else:
                self._tx_line.append(byte)

        return len(data)

    def _on_command(self, command: str) -> None:
        self.commands.append(command)
        if not self._script:
            return

        expected, lines = self._script[0]
        if expected is not None and expected != command:
            return

        self._script.popleft()
        if lines:
            self.inject(lines)
            logger.debug(f"Mock released response to {command!r}: {lines}")

    def pending_responses(self) -> int:
        """Number of scripted responses not yet released."""
        return len(self._script)

    def _check_open(self) -> None:
        if not self._open:
            raise DeviceDisconnectedError(
                "MockTransport is closed (simulating device disconnection)",
                response=["MockTransport closed"]
            )

    def is_open(self) -> bool:
        """Check if mock transport is open."""
        return self._open

    def close(self) -> None:
        """Close mock transport."""
        self._open = False
        logger.info("Closed MockTransport")


class ResetLine(ABC):
    """Hardware reset line of the modem."""

    @abstractmethod
    def assert_reset(self) -> None:
        pass

    @abstractmethod
    def release_reset(self) -> None:
        pass


class NullResetLine(ResetLine):
    """Reset line for hosts without one; hard resets become plain restarts."""

    def assert_reset(self) -> None:
        logger.debug("No reset line wired, skipping assert")

    def release_reset(self) -> None:
        logger.debug("No reset line wired, skipping release")


class SerialResetLine(ResetLine):
    """Reset line wired to the DTR output of a serial adapter."""

    def __init__(self, transport: SerialTransport, active_high: bool = True) -> None:
        self.transport = transport
        self.active_high = active_high

    def assert_reset(self) -> None:
        logger.info(f"Asserting modem reset via DTR on {self.transport.port}")
        self.transport.set_dtr(self.active_high)

    def release_reset(self) -> None:
        logger.info(f"Releasing modem reset via DTR on {self.transport.port}")
        self.transport.set_dtr(not self.active_high)


class MockResetLine(ResetLine):
    """Reset line that records its transitions."""

    def __init__(self) -> None:
        self.events: list[str] = []

    def assert_reset(self) -> None:
        self.events.append("assert")

    def release_reset(self) -> None:
        self.events.append("release")
