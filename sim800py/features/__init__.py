"""
Feature managers for modem functionality.

Provides high-level managers for different modem capabilities:
- NetworkManager: Registration, GPRS attach, signal quality
- CallManager: Outbound calls and inbound ring hang-up
- SMSManager: SMS list/fetch/delete/send and balance query
- WebSubmissionManager: One-shot HTTP submission over GPRS/TCP
"""

from .network import NetworkManager
from .call import CallManager
from .sms import SMSManager, SMSBuffer
from .web import WebSubmissionManager

__all__ = [
    "NetworkManager",
    "CallManager",
    "SMSManager",
    "SMSBuffer",
    "WebSubmissionManager",
]
