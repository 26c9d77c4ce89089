"""
Tests for CallManager.
"""

import pytest
from sim800py import ModemConfig, SIM800Modem
from sim800py.features.call import call_outcome
from sim800py.types import CallState

NUMBER = "+441234567890"
DIAL = f"ATD{NUMBER};"


def clcc(status):
    return [f'+CLCC: 1,0,{status},0,0,"{NUMBER}",145', "OK"]


@pytest.mark.parametrize("status, expected", [
    (0, True),   # active
    (1, True),   # held
    (6, True),   # disconnected
    (4, False),  # incoming
    (5, False),  # waiting
    (2, None),   # dialing
    (3, None),   # alerting
])
def test_call_outcome_mapping(status, expected):
    assert call_outcome(status) is expected


def test_dial_connects(ready_modem, mock_transport):
    mock_transport.add_response(["OK"], DIAL)
    mock_transport.add_response(clcc(2), "AT+CLCC")
    mock_transport.add_response(clcc(3), "AT+CLCC")
    mock_transport.add_response(clcc(0), "AT+CLCC")
    mock_transport.add_response(["OK"], "ATH")

    assert ready_modem.call.dial(NUMBER) is True

    assert ready_modem.call.state is CallState.HUNG_UP
    assert mock_transport.commands == [DIAL, "AT+CLCC", "AT+CLCC", "AT+CLCC", "ATH"]
    assert ready_modem.protocol_error_count == 0


def test_dial_bare_ok_means_call_completed(ready_modem, mock_transport):
    mock_transport.add_response(["OK"], DIAL)
    mock_transport.add_response(["OK"], "AT+CLCC")
    mock_transport.add_response(["OK"], "ATH")

    assert ready_modem.call.dial(NUMBER) is True


@pytest.mark.parametrize("status", [4, 5])
def test_dial_invalid_status_fails(ready_modem, mock_transport, status):
    mock_transport.add_response(["OK"], DIAL)
    mock_transport.add_response(clcc(status), "AT+CLCC")
    mock_transport.add_response(["OK"], "ATH")

    assert ready_modem.call.dial(NUMBER) is False
    assert mock_transport.commands[-1] == "ATH"


def test_dial_status_error_counts(ready_modem, mock_transport):
    mock_transport.add_response(["OK"], DIAL)
    mock_transport.add_response(["ERROR"], "AT+CLCC")
    mock_transport.add_response(["OK"], "ATH")

    assert ready_modem.call.dial(NUMBER) is False
    assert ready_modem.protocol_error_count == 1


def test_dial_rejected_hangs_up(ready_modem, mock_transport):
    mock_transport.add_response(["ERROR"], DIAL)
    mock_transport.add_response(["OK"], "ATH")

    assert ready_modem.call.dial(NUMBER) is False

    assert ready_modem.call.state is CallState.FAILED
    assert mock_transport.commands == [DIAL, "ATH"]


def test_hangup_failure_fails_call(ready_modem, mock_transport):
    mock_transport.add_response(["OK"], DIAL)
    mock_transport.add_response(clcc(0), "AT+CLCC")
    mock_transport.add_response(["ERROR"], "ATH")

    assert ready_modem.call.dial(NUMBER) is False
    assert ready_modem.protocol_error_count == 1


def test_dial_gives_up_at_deadline(mock_transport, clock):
    """A call that never leaves "dialing" is hung up once the deadline passes."""
    modem = SIM800Modem(
        transport=mock_transport,
        clock=clock,
        config=ModemConfig(call_poll_deadline_ms=2_000)
    )
    modem.core.state.initialised = True
    mock_transport.add_response(["OK"], DIAL)
    mock_transport.add_response(["OK"], "ATH")

    assert modem.call.dial(NUMBER) is False

    assert modem.call.state is CallState.HUNG_UP
    assert mock_transport.commands.count("AT+CLCC") == 1
    assert mock_transport.commands[-1] == "ATH"


def test_dial_needs_initialised_modem(modem, mock_transport):
    assert modem.call.dial(NUMBER) is False
    assert mock_transport.written == []


def test_inbound_call_hung_up_after_ring_delay(ready_modem, mock_transport, clock):
    mock_transport.inject([f'+CLIP: "{NUMBER}",145,"",0,"",0'])
    ready_modem.refresh()

    assert ready_modem.call.call_received is False
    assert mock_transport.written == []

    clock.advance(5_000)
    ready_modem.refresh()
    assert mock_transport.written == []

    clock.advance(5_001)
    mock_transport.add_response(["OK"], "ATH")
    ready_modem.refresh()

    assert mock_transport.commands == ["ATH"]
    assert ready_modem.call.call_received is True
    assert ready_modem.call.caller_id == NUMBER
    assert ready_modem.core.call_record.ring_pending is False


def test_inbound_hangup_retried_until_acknowledged(ready_modem, mock_transport, clock):
    mock_transport.inject(['+CLIP: "",128,"",0,"",0'])
    ready_modem.refresh()
    clock.advance(10_001)

    mock_transport.add_response(["ERROR"], "ATH")
    ready_modem.refresh()
    assert ready_modem.call.call_received is False

    mock_transport.add_response(["OK"], "ATH")
    ready_modem.refresh()
    assert ready_modem.call.call_received is True
    assert ready_modem.call.caller_id == "UNKNOWN"


def test_clear_caller_id(ready_modem, mock_transport, clock):
    mock_transport.inject([f'+CLIP: "{NUMBER}",145'])
    ready_modem.refresh()
    clock.advance(10_001)
    mock_transport.add_response(["OK"], "ATH")
    ready_modem.refresh()

    ready_modem.call.clear_caller_id()

    assert ready_modem.call.call_received is False
    assert ready_modem.call.caller_id == ""


def test_garbled_call_status_counts_and_keeps_polling(ready_modem, mock_transport):
    mock_transport.add_response(["OK"], DIAL)
    mock_transport.add_response(["+CLCC: 1,0", "OK"], "AT+CLCC")
    mock_transport.add_response(clcc(0), "AT+CLCC")
    mock_transport.add_response(["OK"], "ATH")

    assert ready_modem.call.dial(NUMBER) is True

    assert mock_transport.commands == [DIAL, "AT+CLCC", "AT+CLCC", "ATH"]
    assert ready_modem.protocol_error_count == 1
