"""
Tests for SMSManager.
"""

from sim800py.core import CTRL_Z
from sim800py.types import ErrorKind, SMSMessage

LIST = 'AT+CMGL="ALL"'
HEADER = '+CMGL: 1,"REC UNREAD","+447881554465","","19/04/23,15:17:24+04"'
NUMBER = "+441234567890"


def test_sms_available(ready_modem, mock_transport):
    mock_transport.add_response([HEADER, "Hello there", "OK"], LIST)

    assert ready_modem.sms.sms_available() is True
    assert ready_modem.protocol_error_count == 0


def test_sms_not_available(ready_modem, mock_transport):
    mock_transport.add_response(["OK"], LIST)

    assert ready_modem.sms.sms_available() is False
    assert ready_modem.protocol_error_count == 0


def test_sms_available_is_rate_limited(ready_modem, mock_transport, clock):
    mock_transport.add_response([HEADER, "Hello there", "OK"], LIST)

    assert ready_modem.sms.sms_available() is True
    assert ready_modem.sms.sms_available() is True
    assert mock_transport.commands.count(LIST) == 1

    clock.advance(1_001)
    mock_transport.add_response(["OK"], LIST)
    assert ready_modem.sms.sms_available() is False


def test_repeated_list_failures_mean_reboot(ready_modem, mock_transport):
    """Five consecutive listing failures mark the modem for bring-up."""
    for _ in range(4):
        assert ready_modem.sms.sms_available() is False
        assert ready_modem.initialised is True

    assert ready_modem.sms.sms_available() is False

    assert ready_modem.initialised is False
    assert ready_modem.reset_count == 1
    assert ready_modem.protocol_error_count == 5
    assert ready_modem.last_error is ErrorKind.MODEM_REBOOTED


def test_list_success_resets_failure_count(ready_modem, mock_transport, clock):
    for _ in range(4):
        mock_transport.add_response(["ERROR"], LIST)
        ready_modem.sms.sms_available()
        clock.advance(1_001)

    mock_transport.add_response(["OK"], LIST)
    ready_modem.sms.sms_available()
    clock.advance(1_001)

    mock_transport.add_response(["ERROR"], LIST)
    ready_modem.sms.sms_available()

    assert ready_modem.initialised is True
    assert ready_modem.reset_count == 0


def test_fetch_pending(ready_modem, mock_transport):
    mock_transport.add_response([HEADER, "Hello there", "OK"], LIST)

    message = ready_modem.sms.fetch_pending()

    assert isinstance(message, SMSMessage)
    assert message.index == "1"
    assert message.sender == "+447881554465"
    assert message.status == "REC UNREAD"
    assert message.timestamp == "19/04/23,15:17:24+04"
    assert message.content == "Hello there"
    assert message.ucs2_decoded is False
    assert ready_modem.sms.text == "Hello there"
    assert ready_modem.protocol_error_count == 0


def test_fetch_pending_nothing_stored(ready_modem, mock_transport):
    mock_transport.add_response(["OK"], LIST)

    assert ready_modem.sms.fetch_pending() is None
    assert ready_modem.protocol_error_count == 0


def test_fetch_pending_error(ready_modem, mock_transport):
    mock_transport.add_response(["ERROR"], LIST)

    assert ready_modem.sms.fetch_pending() is None
    assert ready_modem.protocol_error_count == 1


def test_fetch_pending_decodes_ucs2(ready_modem, mock_transport):
    header = '+CMGL: 2,"REC UNREAD","Lebara","","19/04/23,15:17:24+04"'
    mock_transport.add_response([header, "0041004200430044", "OK"], LIST)

    message = ready_modem.sms.fetch_pending()

    assert message.content == "ABCD"
    assert message.ucs2_decoded is True
    assert ready_modem.sms.text == "ABCD"


def test_fetch_pending_leaves_numeric_sender_alone(ready_modem, mock_transport):
    mock_transport.add_response([HEADER, "0041004200430044", "OK"], LIST)

    message = ready_modem.sms.fetch_pending()

    assert message.content == "0041004200430044"
    assert message.ucs2_decoded is False


def test_fetch_pending_truncates_body(ready_modem, mock_transport):
    mock_transport.add_response([HEADER, "x" * 160, "OK"], LIST)
    ready_modem.sms.buffer.capacity = 100

    message = ready_modem.sms.fetch_pending()
    assert message.content == "x" * 100


def test_delete(ready_modem, mock_transport):
    mock_transport.add_response(["OK"], "AT+CMGD=1")

    assert ready_modem.sms.delete("1") is True
    assert mock_transport.commands == ["AT+CMGD=1"]


def test_delete_error_counts(ready_modem, mock_transport):
    mock_transport.add_response(["ERROR"], "AT+CMGD=7")

    assert ready_modem.sms.delete("7") is False
    assert ready_modem.protocol_error_count == 1


def test_send_from_buffer(ready_modem, mock_transport):
    ready_modem.sms.write_buffer("Hello world")
    mock_transport.add_response(["+CMGS: 12", "OK"], CTRL_Z)

    assert ready_modem.sms.send_from_buffer(NUMBER) is True

    assert mock_transport.commands == [f'AT+CMGS="{NUMBER}"', "Hello world", CTRL_Z]
    assert ready_modem.sms.text == ""


def test_send_from_buffer_retries(ready_modem, mock_transport):
    ready_modem.sms.write_buffer("Hello world")
    mock_transport.add_response(["ERROR"], CTRL_Z)
    mock_transport.add_response(["OK"], CTRL_Z)

    assert ready_modem.sms.send_from_buffer(NUMBER) is True
    assert mock_transport.commands.count(CTRL_Z) == 2


def test_send_from_buffer_gives_up_after_three_attempts(ready_modem, mock_transport):
    ready_modem.sms.write_buffer("Hello world")

    assert ready_modem.sms.send_from_buffer(NUMBER) is False

    assert mock_transport.commands.count(CTRL_Z) == 3
    assert ready_modem.sms.text == "Hello world"


def test_write_buffer_truncates(ready_modem):
    stored = ready_modem.sms.write_buffer("y" * 200)

    assert len(stored) == 162
    assert ready_modem.sms.text == stored


def test_fetch_balance(ready_modem, mock_transport):
    mock_transport.add_response(["OK", '+CUSD: 0,"Your balance is 5.00 GBP",15'], "ATD*#1345#;")

    assert ready_modem.sms.fetch_balance() is True
    assert ready_modem.sms.text == "Your balance is 5.00 GBP"


def test_fetch_balance_rejected(ready_modem, mock_transport):
    ready_modem.sms.write_buffer("stale")
    mock_transport.add_response(["ERROR"], "ATD*#1345#;")

    assert ready_modem.sms.fetch_balance() is False
    assert ready_modem.sms.text == ""
    assert ready_modem.protocol_error_count == 1


def test_sms_operations_need_initialised_modem(modem, mock_transport):
    assert modem.sms.sms_available() is False
    assert modem.sms.fetch_pending() is None
    assert modem.sms.delete("1") is False
    assert modem.sms.send_from_buffer(NUMBER) is False
    assert modem.sms.fetch_balance() is False
    assert mock_transport.written == []
