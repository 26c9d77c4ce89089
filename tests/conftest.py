"""
Pytest configuration and fixtures.

Provides shared test fixtures for sim800py tests.
"""

import pytest
import logging

from sim800py.core import ManualClock, MockResetLine, MockTransport, ModemCore
from sim800py import ModemConfig, SIM800Modem


# Enable logging for tests
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@pytest.fixture
def mock_transport():
    """
    Create a MockTransport instance for testing.

    Example:
        def test_something(mock_transport):
            mock_transport.add_response(["OK"], "AT")
            # ... test code ...
    """
    transport = MockTransport()
    yield transport
    transport.close()


@pytest.fixture
def clock():
    """Virtual clock; every wait in the driver advances it instead of sleeping."""
    return ManualClock()


@pytest.fixture
def reset_line():
    return MockResetLine()


@pytest.fixture
def config():
    return ModemConfig(web_host="example.com")


@pytest.fixture
def modem_core(mock_transport, clock, config):
    """Create a ModemCore instance with MockTransport (not initialised)."""
    core = ModemCore(transport=mock_transport, clock=clock, config=config)
    yield core
    core.close()


@pytest.fixture
def modem(mock_transport, clock, reset_line, config):
    """
    Create an uninitialised SIM800Modem instance with MockTransport.

    Example:
        def test_bring_up(modem, mock_transport):
            mock_transport.add_response(["OK", "SMS Ready"], "AT")
            ...
            assert modem.initialise()
    """
    modem_instance = SIM800Modem(
        transport=mock_transport,
        clock=clock,
        reset_line=reset_line,
        config=config
    )
    yield modem_instance
    modem_instance.close()


@pytest.fixture
def ready_modem(modem):
    """SIM800Modem marked as initialised, as if bring-up had succeeded."""
    modem.core.state.initialised = True
    return modem


@pytest.fixture
def bring_up_script():
    """Replies for every command of a clean bring-up after the AT probe."""
    return [
        (["OK"], "AT&F"),
        (["OK"], "ATE 0"),
        (["89441000300000000000", "OK"], "AT+CCID"),
        (["OK"], "AT+CMGF=1"),
        (["OK"], "AT+CLIP=1"),
        (["OK"], "AT+CUSD=1"),
        (["OK"], "AT+CFUN=4"),
        (["OK"], "AT+CFUN=1"),
    ]


@pytest.fixture
def script(mock_transport):
    """Queue (lines, command) pairs on the MockTransport."""
    def queue(steps):
        for lines, command in steps:
            mock_transport.add_response(lines, command)
    return queue
