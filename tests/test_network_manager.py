"""
Tests for NetworkManager.
"""

from sim800py.types import ErrorKind, SignalQuality


def test_get_signal_quality(ready_modem, mock_transport):
    """+CSQ: 18,0 gives rssi 18, three bars and 58 percent."""
    mock_transport.add_response(["+CSQ: 18,0", "OK"], "AT+CSQ")

    signal = ready_modem.network.get_signal_quality()

    assert isinstance(signal, SignalQuality)
    assert signal.rssi == 18
    assert signal.ber == 0
    assert signal.bars == 3
    assert signal.percent == 58
    assert signal.rssi_dbm == -77  # -113 + (18 * 2)
    assert ready_modem.network.signal_bars() == 3
    assert ready_modem.network.signal_percent() == 58
    assert ready_modem.core.state.signal_rssi == 18


def test_get_signal_quality_no_signal(ready_modem, mock_transport):
    mock_transport.add_response(["+CSQ: 99,99", "OK"], "AT+CSQ")

    signal = ready_modem.network.get_signal_quality()

    assert signal.rssi == 99
    assert signal.is_valid is False
    assert signal.rssi_dbm is None
    assert signal.bars == 0
    assert signal.percent == 0


def test_signal_is_rate_limited(ready_modem, mock_transport, clock):
    mock_transport.add_response(["+CSQ: 18,0", "OK"], "AT+CSQ")
    mock_transport.add_response(["+CSQ: 25,0", "OK"], "AT+CSQ")

    assert ready_modem.network.get_rssi() == 18
    assert ready_modem.network.get_rssi() == 18
    assert mock_transport.commands.count("AT+CSQ") == 1

    clock.advance(10_001)
    assert ready_modem.network.get_rssi() == 25
    assert mock_transport.commands.count("AT+CSQ") == 2


def test_signal_error_counts_protocol_error(ready_modem, mock_transport):
    mock_transport.add_response(["ERROR"], "AT+CSQ")

    assert ready_modem.network.get_rssi() == 0
    assert ready_modem.protocol_error_count == 1
    assert ready_modem.last_error is ErrorKind.PROTOCOL_ERROR


def test_queries_need_initialised_modem(modem, mock_transport):
    assert modem.network.get_rssi() == 0
    assert modem.network.signal_bars() == 0
    assert modem.network.is_registered() is False
    assert modem.network.is_gprs_attached() is False
    assert mock_transport.written == []


def test_is_registered_home(ready_modem, mock_transport):
    mock_transport.add_response(["+CREG: 0,1", "OK"], "AT+CREG?")

    assert ready_modem.network.is_registered() is True
    assert ready_modem.protocol_error_count == 0


def test_is_registered_roaming(ready_modem, mock_transport):
    mock_transport.add_response(["+CREG: 0,5", "OK"], "AT+CREG?")
    assert ready_modem.network.is_registered() is True


def test_is_registered_searching(ready_modem, mock_transport):
    mock_transport.add_response(["+CREG: 0,2", "OK"], "AT+CREG?")

    assert ready_modem.network.is_registered() is False
    assert ready_modem.registration_denied is False
    assert "AT+CFUN=4" not in mock_transport.commands


def test_registration_denied_cycles_radio(ready_modem, mock_transport):
    mock_transport.add_response(["+CREG: 0,3", "OK"], "AT+CREG?")
    mock_transport.add_response(["OK"], "AT+CFUN=4")
    mock_transport.add_response(["OK"], "AT+CFUN=1")

    assert ready_modem.network.is_registered() is False

    assert ready_modem.registration_denied is True
    assert ready_modem.protocol_error_count == 1
    assert ready_modem.last_error is ErrorKind.REGISTRATION_DENIED
    assert mock_transport.commands == ["AT+CREG?", "AT+CFUN=4", "AT+CFUN=1"]


def test_registration_recovers_after_denial(ready_modem, mock_transport, clock):
    mock_transport.add_response(["+CREG: 0,3", "OK"], "AT+CREG?")
    mock_transport.add_response(["OK"], "AT+CFUN=4")
    mock_transport.add_response(["OK"], "AT+CFUN=1")
    ready_modem.network.is_registered()

    clock.advance(5_001)
    mock_transport.add_response(["+CREG: 0,1", "OK"], "AT+CREG?")

    assert ready_modem.network.is_registered() is True
    assert ready_modem.registration_denied is False


def test_registration_cached_between_polls(ready_modem, mock_transport):
    mock_transport.add_response(["+CREG: 0,1", "OK"], "AT+CREG?")

    assert ready_modem.network.is_registered() is True
    assert ready_modem.network.is_registered() is True
    assert mock_transport.commands == ["AT+CREG?"]


def test_registration_timeout_counts_error(ready_modem, mock_transport):
    assert ready_modem.network.is_registered() is False
    assert ready_modem.protocol_error_count == 1


def test_gprs_attached(ready_modem, mock_transport):
    mock_transport.add_response(["+CGREG: 0,1", "OK"], "AT+CGREG?")
    mock_transport.add_response(["+CGATT: 1", "OK"], "AT+CGATT?")

    assert ready_modem.network.is_gprs_attached() is True
    assert ready_modem.protocol_error_count == 0


def test_gprs_detached(ready_modem, mock_transport):
    mock_transport.add_response(["+CGREG: 0,1", "OK"], "AT+CGREG?")
    mock_transport.add_response(["+CGATT: 0", "OK"], "AT+CGATT?")

    assert ready_modem.network.is_gprs_attached() is False


def test_gprs_not_registered_skips_attach_query(ready_modem, mock_transport):
    mock_transport.add_response(["+CGREG: 0,2", "OK"], "AT+CGREG?")

    assert ready_modem.network.is_gprs_attached() is False
    assert mock_transport.commands == ["AT+CGREG?"]


def test_gprs_denied_cycles_radio(ready_modem, mock_transport):
    mock_transport.add_response(["+CGREG: 0,3", "OK"], "AT+CGREG?")
    mock_transport.add_response(["OK"], "AT+CFUN=4")
    mock_transport.add_response(["OK"], "AT+CFUN=1")

    assert ready_modem.network.is_gprs_attached() is False
    assert ready_modem.protocol_error_count == 1
    assert "AT+CGATT?" not in mock_transport.commands


def test_garbled_signal_counts_protocol_error(ready_modem, mock_transport):
    mock_transport.add_response(["+CSQ: xx,0", "OK"], "AT+CSQ")

    assert ready_modem.network.get_rssi() == 0
    assert ready_modem.protocol_error_count == 1
    assert ready_modem.last_error is ErrorKind.PROTOCOL_ERROR


def test_garbled_registration_counts_protocol_error(ready_modem, mock_transport):
    mock_transport.add_response(["+CREG: garbage", "OK"], "AT+CREG?")

    assert ready_modem.network.is_registered() is False
    assert ready_modem.protocol_error_count == 1


def test_garbled_gprs_lines_count_protocol_errors(ready_modem, mock_transport):
    mock_transport.add_response(["+CGREG: 0,x", "OK"], "AT+CGREG?")
    mock_transport.add_response(["+CGATT: ?", "OK"], "AT+CGATT?")

    assert ready_modem.network.is_gprs_attached() is False
    assert ready_modem.protocol_error_count == 2
