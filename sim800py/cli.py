"""
CLI REPL (Read-Eval-Print Loop) for sim800py.

Provides an interactive AT command terminal with shortcuts for the driver's
call, SMS and status operations.
"""

import sys
import logging
from typing import Optional

from .config import ModemConfig
from .core import SerialResetLine, SerialTransport
from .modem import SIM800Modem
from .version import __version__
from .exceptions import SIM800Error


class SIM800CLI:
    """Interactive AT command REPL."""

    def __init__(
        self,
        port: str,
        baudrate: int = 115200,
        log_urcs: bool = True,
        config: Optional[ModemConfig] = None,
        reset_on_dtr: bool = False
    ):
        """
        Initialize CLI.

        Args:
            port: Serial port path
            baudrate: Baud rate
            log_urcs: Display URCs as they are seen
            config: Driver tunables
            reset_on_dtr: Drive the modem reset line from DTR
        """
        self.port = port
        self.baudrate = baudrate
        self.log_urcs = log_urcs
        self.config = config
        self.reset_on_dtr = reset_on_dtr
        self.modem: Optional[SIM800Modem] = None
        self.urc_count = 0

    def _setup_urc_display(self):
        """Set up URC display callback."""
        def display_urc(line: str):
            self.urc_count += 1
            print(f"\n[URC {self.urc_count}] {line}")

        if self.log_urcs:
            for prefix in ("+CLIP", "+CMTI", "+CUSD", "SMS Ready", "Call Ready", "CLOSED"):
                self.modem.register_urc_callback(prefix, display_urc)

    def run(self):
        """Run the REPL."""
        print(f"sim800py CLI v{__version__}")
        print(f"Connecting to {self.port} at {self.baudrate} baud...")
        print("Type 'help' for commands, 'quit' to exit\n")

        try:
            transport = SerialTransport(port=self.port, baudrate=self.baudrate)
            reset_line = SerialResetLine(transport) if self.reset_on_dtr else None
            self.modem = SIM800Modem(
                transport=transport,
                config=self.config,
                reset_line=reset_line,
                log_urcs=False  # We handle URC display ourselves
            )
            self._setup_urc_display()

            print("Connected! Run 'init' before using the shortcuts.\n")

            while True:
                try:
                    cmd = input("> ").strip()

                    if not cmd:
                        continue

                    word, _, arg = cmd.partition(" ")
                    word = word.lower()
                    arg = arg.strip()

                    if word in ("quit", "exit", "q"):
                        break
                    elif word == "help":
                        self._print_help()
                    elif word == "clear":
                        print("\033[2J\033[H", end="")  # Clear screen
                    elif word == "init":
                        self._initialise(force_reset=(arg == "reset"))
                    elif word == "info":
                        self._show_modem_info()
                    elif word == "poll":
                        self._poll()
                    elif word == "urcs":
                        self._show_urc_status()
                    elif word == "call" and arg:
                        self._call(arg)
                    elif word == "sms" and arg:
                        self._send_sms(arg)
                    elif word == "inbox":
                        self._show_inbox()
                    elif word == "balance":
                        self._show_balance()
                    else:
                        self._send_command(cmd)

                except KeyboardInterrupt:
                    print("\nUse 'quit' to exit")
                    continue
                except EOFError:
                    break

        except SIM800Error as e:
            print(f"\nError: {e}")
            return 1
        except Exception as e:
            print(f"\nUnexpected error: {e}")
            logging.exception("CLI error")
            return 1
        finally:
            if self.modem:
                print("\nClosing connection...")
                self.modem.close()
                print("Goodbye!")

        return 0

    def _send_command(self, cmd: str):
        """Send AT command and display response."""
        try:
            response = self.modem.send_raw_at(cmd)

            if not response:
                print("(no response)")
            for line in response:
                print(line)

        except SIM800Error as e:
            print(f"Error: {e}")

    def _print_help(self):
        """Print help message."""
        print("""
Available commands:
  <AT command>  - Send AT command to modem (e.g., AT+CSQ)
  init [reset]  - Run modem bring-up (optionally pulsing the reset line)
  info          - Show modem status
  poll          - Run one refresh cycle (URCs, inbound call hang-up)
  call <number> - Dial a number, wait for connection, hang up
  sms <number>  - Prompt for text and send it as an SMS
  inbox         - Show the first stored SMS
  balance       - Run the balance USSD query
  urcs          - Show URC monitoring status
  help          - Show this help message
  clear         - Clear screen
  quit/exit/q   - Exit CLI

Common AT commands:
  ATI           - Get model information
  AT+CSQ        - Check signal quality
  AT+CREG?      - Check network registration
  AT+CCID       - Get SIM ICCID
  AT+GSN        - Get IMEI
        """)

    def _initialise(self, force_reset: bool):
        print("Running bring-up (this can take a minute)...")
        if self.modem.initialise(force_reset=force_reset):
            print("Modem ready")
        else:
            print(f"Bring-up failed: {self.modem.last_error}")
            if not self.modem.sim_present:
                print("SIM card not detected")

    def _poll(self):
        self.modem.refresh()
        if self.modem.call.call_received:
            print(f"Missed call from {self.modem.call.caller_id}")
            self.modem.call.clear_caller_id()

    def _call(self, number: str):
        print(f"Calling {number}...")
        ok = self.modem.call.dial(number)
        print("Call connected" if ok else "Call failed")

    def _send_sms(self, number: str):
        text = input("text> ")
        self.modem.sms.clear_buffer()
        stored = self.modem.sms.write_buffer(text)
        if len(stored) < len(text):
            print(f"Message truncated to {len(stored)} characters")
        print("Sent" if self.modem.sms.send_from_buffer(number) else "Send failed")

    def _show_inbox(self):
        if not self.modem.sms.sms_available():
            print("No messages")
            return

        message = self.modem.sms.fetch_pending()
        if message is None:
            print("Could not read message")
            return

        print(f"[{message.index}] {message.sender} {message.timestamp or ''}")
        print(message.content)
        if input("Delete? [y/N] ").strip().lower() == "y":
            self.modem.sms.delete(message.index)
        self.modem.sms.clear_buffer()

    def _show_balance(self):
        if self.modem.sms.fetch_balance():
            print(self.modem.sms.text)
        else:
            print("Balance query failed")
        self.modem.sms.clear_buffer()

    def _show_urc_status(self):
        """Show URC monitoring status."""
        print(f"\nURCs displayed this session: {self.urc_count}")
        print(f"URC display: {'Enabled' if self.log_urcs else 'Disabled'}")

        history = self.modem.core.urc.history()
        print(f"URCs in history: {len(history)}")
        for line in history[-5:]:
            print(f"  {line}")

        callbacks = self.modem.core.urc.get_callbacks()
        print(f"\nRegistered callbacks: {len(callbacks)}")
        for prefix in callbacks.keys():
            print(f"  - {prefix}")

    def _show_modem_info(self):
        """Show modem status."""
        modem = self.modem
        print(f"\nInitialised: {modem.initialised}")
        print(f"SIM present: {modem.sim_present}")
        print(f"Protocol errors: {modem.protocol_error_count}")
        print(f"Detected reboots: {modem.reset_count}")
        if modem.last_error:
            print(f"Last error: {modem.last_error.value}")

        if not modem.initialised:
            return

        signal = modem.network.get_signal_quality()
        if signal.is_valid:
            print(f"\nSignal: RSSI={signal.rssi} ({signal.rssi_dbm} dBm), {signal.bars} bars, {signal.percent}%")
        else:
            print("\nSignal: No signal detected")

        print(f"Registered: {modem.network.is_registered()}")
        if modem.registration_denied:
            print("Registration was denied by the network")
        print(f"GPRS attached: {modem.network.is_gprs_attached()}")


def main():
    """Main entry point for CLI."""
    import argparse

    parser = argparse.ArgumentParser(
        description="sim800py CLI - Interactive AT command terminal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sim800-cli /dev/ttyS0
  sim800-cli /dev/ttyS0 --baudrate 9600
  sim800-cli /dev/ttyUSB0 --reset-on-dtr --apn internet
        """
    )

    parser.add_argument(
        "port",
        help="Serial port (e.g., /dev/ttyS0, COM3)"
    )
    parser.add_argument(
        "-b", "--baudrate",
        type=int,
        default=115200,
        help="Baud rate (default: 115200)"
    )
    parser.add_argument(
        "--apn",
        default="internet",
        help="GPRS access point name (default: internet)"
    )
    parser.add_argument(
        "--balance-code",
        default="*#1345#",
        help="USSD code for the balance query (default: *#1345#)"
    )
    parser.add_argument(
        "--reset-on-dtr",
        action="store_true",
        help="Modem reset line is wired to DTR"
    )
    parser.add_argument(
        "--no-urcs",
        action="store_true",
        help="Disable URC display"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
    else:
        logging.basicConfig(
            level=logging.WARNING,
            format='%(levelname)s: %(message)s'
        )

    try:
        config = ModemConfig(apn=args.apn, balance_ussd=args.balance_code)
    except SIM800Error as e:
        print(f"Invalid configuration: {e}")
        return 2

    cli = SIM800CLI(
        port=args.port,
        baudrate=args.baudrate,
        log_urcs=not args.no_urcs,
        config=config,
        reset_on_dtr=args.reset_on_dtr
    )

    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
