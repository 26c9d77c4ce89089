"""
Basic connection example.

Demonstrates bringing the modem up and reading its status.
"""

from sim800py import SIM800Modem

# Replace with your serial port
PORT = "/dev/ttyS0"


def main():
    """Main function."""
    print("sim800py - Basic Connection Example\n")

    with SIM800Modem(port=PORT) as modem:
        print("Running bring-up (can take up to a minute)...")
        if not modem.initialise():
            print(f"Bring-up failed: {modem.last_error}")
            if not modem.sim_present:
                print("No SIM card detected")
            return

        print("Modem ready!\n")

        print("=== Network ===")
        print(f"Registered: {modem.network.is_registered()}")
        print(f"GPRS attached: {modem.network.is_gprs_attached()}")

        signal = modem.network.get_signal_quality()
        print(f"Signal: {signal.bars}/4 bars ({signal.percent}%)")

        print("\n=== Identity ===")
        for line in modem.send_raw_at("ATI"):
            print(line)

    print("\nConnection closed.")


if __name__ == "__main__":
    main()
