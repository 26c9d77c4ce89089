"""
Web submission example.

Sends one HTTP GET over GPRS and waits for the server's "+BOB: 1" line.
"""

from sim800py import ModemConfig, SIM800Modem

# Replace with your serial port, APN and server
PORT = "/dev/ttyS0"
CONFIG = ModemConfig(apn="internet", web_host="example.com", web_port=80)


def main():
    """Main function."""
    print("sim800py - Web Submission Example\n")

    with SIM800Modem(port=PORT, config=CONFIG) as modem:
        if not modem.initialise():
            print("Bring-up failed")
            return

        if not modem.web.prepare():
            print("Could not open connection")
            return

        modem.web.send_payload(
            f"GET /log?v=12 HTTP/1.1\r\nHost: {CONFIG.web_host}\r\nConnection: close\r\n\r\n"
        )

        if modem.web.complete():
            print("Server accepted the submission")
        else:
            print(f"Submission failed (protocol errors: {modem.protocol_error_count})")


if __name__ == "__main__":
    main()
