"""
Tests for the bring-up sequence and refresh.
"""

from sim800py.types import ErrorKind


def test_bring_up_after_silent_probes(modem, mock_transport, script, bring_up_script):
    """Two unanswered probes, then OK, banner and a clean configuration run."""
    mock_transport.add_response([], "AT")
    mock_transport.add_response([], "AT")
    mock_transport.add_response(["OK", "SMS Ready"], "AT")
    script(bring_up_script)

    assert modem.initialise() is True

    assert modem.initialised is True
    assert modem.protocol_error_count == 0
    assert modem.sim_present is True
    assert mock_transport.pending_responses() == 0
    assert mock_transport.commands == [
        "AT", "AT", "AT",
        "AT&F", "ATE 0", "AT+CCID", "AT+CMGF=1", "AT+CLIP=1", "AT+CUSD=1",
        "AT+CFUN=4", "AT+CFUN=1",
    ]


def test_bring_up_without_reset_leaves_reset_line_alone(modem, mock_transport, reset_line, script, bring_up_script):
    mock_transport.add_response(["OK", "SMS Ready"], "AT")
    script(bring_up_script)

    modem.initialise()
    assert reset_line.events == []


def test_forced_reset_cycles_reset_line(modem, mock_transport, reset_line, script, bring_up_script):
    mock_transport.add_response(["OK", "SMS Ready"], "AT")
    script(bring_up_script)

    assert modem.initialise(force_reset=True) is True
    assert reset_line.events == ["assert", "release"]


def test_probe_never_answered(modem, mock_transport, clock):
    assert modem.initialise() is False

    assert modem.initialised is False
    assert modem.last_error is ErrorKind.TIMEOUT
    assert set(mock_transport.commands) == {"AT"}
    assert clock.now_ms() >= 30_000


def test_forced_reset_without_banner_detects_missing_sim(modem, mock_transport):
    mock_transport.add_response(["OK"], "AT")
    mock_transport.add_response(["ERROR"], "AT+CCID")

    assert modem.initialise(force_reset=True) is False

    assert modem.sim_present is False
    assert modem.last_error is ErrorKind.RESOURCE_ABSENT
    assert "AT&F" not in mock_transport.commands


def test_forced_reset_without_banner_defers_with_sim(modem, mock_transport):
    mock_transport.add_response(["OK"], "AT")
    mock_transport.add_response(["89441000300000000000", "OK"], "AT+CCID")

    assert modem.initialise(force_reset=True) is False

    assert modem.sim_present is True
    assert "AT&F" not in mock_transport.commands


def test_missing_banner_on_warm_start_continues(modem, mock_transport, script, bring_up_script):
    mock_transport.add_response(["OK"], "AT")
    script(bring_up_script)

    assert modem.initialise() is True


def test_configuration_step_error_aborts(modem, mock_transport):
    mock_transport.add_response(["OK", "SMS Ready"], "AT")
    mock_transport.add_response(["OK"], "AT&F")
    mock_transport.add_response(["ERROR"], "ATE 0")

    assert modem.initialise() is False

    assert modem.initialised is False
    assert modem.protocol_error_count == 1
    assert "AT+CCID" not in mock_transport.commands


def test_sim_check_failure_in_configuration(modem, mock_transport):
    mock_transport.add_response(["OK", "SMS Ready"], "AT")
    mock_transport.add_response(["OK"], "AT&F")
    mock_transport.add_response(["OK"], "ATE 0")
    mock_transport.add_response(["ERROR"], "AT+CCID")

    assert modem.initialise() is False
    assert modem.sim_present is False
    assert modem.last_error is ErrorKind.RESOURCE_ABSENT


def test_radio_cycle_failure_aborts(modem, mock_transport, script, bring_up_script):
    mock_transport.add_response(["OK", "SMS Ready"], "AT")
    script(bring_up_script[:-1])
    mock_transport.add_response(["ERROR"], "AT+CFUN=1")

    assert modem.initialise() is False
    assert modem.protocol_error_count == 1


def test_bring_up_is_reentrant_after_failure(modem, mock_transport, script, bring_up_script):
    mock_transport.add_response(["OK", "SMS Ready"], "AT")
    mock_transport.add_response(["ERROR"], "AT&F")
    assert modem.initialise() is False

    mock_transport.add_response(["OK", "SMS Ready"], "AT")
    script(bring_up_script)
    assert modem.initialise() is True


def test_refresh_runs_bring_up_when_uninitialised(modem, mock_transport, script, bring_up_script):
    mock_transport.add_response(["OK", "SMS Ready"], "AT")
    script(bring_up_script)

    modem.refresh()
    assert modem.initialised is True


def test_refresh_is_idle_when_nothing_happens(ready_modem, mock_transport, clock):
    """No bytes and no pending ring: no transmission and no state change."""
    before = ready_modem.core.state
    snapshot = (before.protocol_error_count, before.reset_count, before.last_error)

    ready_modem.refresh()
    ready_modem.refresh()

    assert mock_transport.written == []
    assert clock.now_ms() == 0
    assert (before.protocol_error_count, before.reset_count, before.last_error) == snapshot


def test_reboot_banner_forces_bring_up(ready_modem, mock_transport, script, bring_up_script):
    mock_transport.inject(["SMS Ready"])
    ready_modem.refresh()

    assert ready_modem.initialised is False
    assert ready_modem.reset_count == 1
    assert ready_modem.last_error is ErrorKind.MODEM_REBOOTED
    assert mock_transport.written == []

    mock_transport.add_response(["OK", "Call Ready", "SMS Ready"], "AT")
    script(bring_up_script)
    ready_modem.refresh()

    assert ready_modem.initialised is True
    assert ready_modem.reset_count == 1
