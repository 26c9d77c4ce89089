"""
Host loop example.

Runs the periodic refresh, reports missed calls, answers SMS commands with
the account balance and reports signal changes.
"""

import time
from sim800py import SIM800Modem

# Replace with your serial port
PORT = "/dev/ttyS0"


def on_sms_notification(line: str):
    """Handle new SMS URC."""
    print(f"\n[SMS NOTIFICATION] {line}")


def main():
    """Main function."""
    print("sim800py - Host Loop Example\n")

    with SIM800Modem(port=PORT, log_urcs=True) as modem:
        modem.register_urc_callback("+CMTI", on_sms_notification)

        print("Running (Ctrl+C to stop)...\n")
        last_bars = None

        try:
            while True:
                # Re-runs bring-up when needed and hangs up ringing calls
                modem.refresh()

                if modem.call.call_received:
                    print(f"Missed call from {modem.call.caller_id}")
                    modem.call.clear_caller_id()

                if modem.sms.sms_available():
                    message = modem.sms.fetch_pending()
                    if message:
                        print(f"SMS from {message.sender}: {message.content}")
                        modem.sms.delete(message.index)
                        modem.sms.clear_buffer()

                        if message.content.strip().lower() == "balance" and modem.sms.fetch_balance():
                            modem.sms.send_from_buffer(message.sender)

                bars = modem.network.signal_bars()
                if bars != last_bars:
                    print(f"Signal: {bars}/4 bars")
                    last_bars = bars

                if modem.protocol_error_count > 50:
                    print("Modem unhealthy, forcing hard reset")
                    modem.initialise(force_reset=True)

                time.sleep(1)

        except KeyboardInterrupt:
            print("\nStopping...")


if __name__ == "__main__":
    main()
