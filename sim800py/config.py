"""
Driver configuration.

Every timing constant and deployment-specific value used by the protocol
engine lives here so hosts can tune them without touching the driver.
"""

from dataclasses import dataclass
from typing import Optional

from .exceptions import ConfigError


@dataclass
class ModemConfig:
    """
    Tunables for a SIM800 driver instance.

    Attributes:
        rx_buffer_size: Longest line the Line Reader will frame (bytes)
        tx_buffer_size: Longest command the Command Channel will transmit
        max_caller_id_len: Bound on stored caller-id strings
        poll_interval_ms: Sleep between iterations of every blocking loop
        settle_ms: Quiet period before each command is transmitted
        post_tx_delay_ms: Modem turnaround delay after each transmission
        ring_hangup_ms: Age at which a pending inbound ring is hung up
        registration_cooldown_ms: Minimum gap between AT+CREG? polls
        gprs_cooldown_ms: Minimum gap between AT+CGREG?/AT+CGATT? polls
        signal_cooldown_ms: Minimum gap between AT+CSQ polls
        sms_list_cooldown_ms: Minimum gap between AT+CMGL polls in sms_available
        sms_list_failure_limit: Consecutive listing failures treated as a reboot
        sms_send_attempts: Attempts made by send_from_buffer
        call_poll_deadline_ms: How long dial() polls AT+CLCC
        call_poll_interval_ms: Gap between AT+CLCC polls
        radio_off_dwell_ms: Pause between AT+CFUN=4 and AT+CFUN=1
        balance_ussd: USSD code dialled by the balance query
        apn / apn_user / apn_password: GPRS access point credentials
        web_host / web_port: TCP endpoint of the web submission session
        web_ack_prefix: Prefix of the application acknowledgement line
        web_ack_success: Acknowledgement line content meaning success

    Example:

    .. code-block:: python

        config = ModemConfig(apn="internet", web_host="example.org", web_port=80)
    """

    rx_buffer_size: int = 162
    tx_buffer_size: int = 162
    max_caller_id_len: int = 20

    poll_interval_ms: int = 10
    settle_ms: int = 150
    post_tx_delay_ms: int = 50

    ring_hangup_ms: int = 10_000
    registration_cooldown_ms: int = 5_000
    gprs_cooldown_ms: int = 5_000
    signal_cooldown_ms: int = 10_000
    sms_list_cooldown_ms: int = 1_000
    sms_list_failure_limit: int = 5
    sms_send_attempts: int = 3

    call_poll_deadline_ms: int = 45_000
    call_poll_interval_ms: int = 500
    radio_off_dwell_ms: int = 5_000

    balance_ussd: str = "*#1345#"

    apn: str = "internet"
    apn_user: str = ""
    apn_password: str = ""
    web_host: Optional[str] = None
    web_port: int = 80
    web_ack_prefix: str = "+BOB: "
    web_ack_success: str = "+BOB: 1"

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ConfigError: If a value is out of range
        """
        for name in ("rx_buffer_size", "tx_buffer_size", "max_caller_id_len",
                     "poll_interval_ms", "sms_send_attempts",
                     "sms_list_failure_limit"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)}")

        for name in ("settle_ms", "post_tx_delay_ms", "ring_hangup_ms",
                     "registration_cooldown_ms", "gprs_cooldown_ms",
                     "signal_cooldown_ms", "sms_list_cooldown_ms",
                     "call_poll_deadline_ms", "call_poll_interval_ms",
                     "radio_off_dwell_ms"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative, got {getattr(self, name)}")

        if not 0 < self.web_port < 65536:
            raise ConfigError(f"web_port out of range: {self.web_port}")

        if not self.web_ack_success.startswith(self.web_ack_prefix):
            raise ConfigError(
                f"web_ack_success {self.web_ack_success!r} does not start with "
                f"web_ack_prefix {self.web_ack_prefix!r}"
            )
