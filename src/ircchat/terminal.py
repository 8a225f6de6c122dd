"""
=============================================================================
INTERACTIVE TERMINAL CLIENT
=============================================================================

A minimal front-end for the chat server:

    ┌──────────────┐   stdin lines    ┌──────────────┐
    │   keyboard   │ ───────────────► │              │
    └──────────────┘   (sender)       │    server    │
    ┌──────────────┐   server lines   │              │
    │   terminal   │ ◄─────────────── │              │
    └──────────────┘   (receiver)     └──────────────┘

Two threads, one per direction. Whichever direction fails first ends
the client: typing Ctrl+D (end of input) or the server hanging up both
close the connection and exit.

    ircchat-client --host localhost --port 9000 --user alice

Without --user the client asks for a username before joining.

=============================================================================
"""

import argparse
import logging
import socket
import sys
import threading
from typing import Optional, TextIO

from .core.connection import Connection


logger = logging.getLogger(__name__)

WELCOME = "irc-server > Welcome to the Simple IRC Server"
PROMPT = "irc-server > Enter your username: "
CLOSED = "irc-server > The connection is closed."


class TerminalClient:
    """
    Relays lines between a text stream pair and the chat server.

    Args:
        host: Server host.
        port: Server port.
        username: Name to register with. Asked for on `stdin` if None.
        stdin: Where user input comes from.
        stdout: Where server lines are printed.
        timeout: Connect timeout, and write deadline once connected.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: Optional[str] = None,
        stdin: TextIO = None,
        stdout: TextIO = None,
        timeout: float = 5.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.timeout = timeout

        self._done = threading.Event()

    def _print(self, text: str, end: str = "\n"):
        print(text, end=end, file=self.stdout, flush=True)

    def connect(self) -> Connection:
        """
        Open the TCP connection.

        Raises:
            OSError: If the server cannot be reached.
        """
        sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        return Connection(socket=sock, address=sock.getpeername()[:2], timeout=self.timeout)

    def run(self) -> int:
        """
        Connect, register and relay until either direction ends.

        Returns:
            0 after a normal session, 1 if connecting or registering failed.
        """
        try:
            conn = self.connect()
        except OSError as e:
            logger.error(f"Failed to connect to the server: {e}")
            return 1

        with conn:
            self._print(WELCOME)

            username = self.username
            if username is None:
                self._print(PROMPT, end="")
                line = self.stdin.readline()
                if not line:
                    logger.error("Failed to read username")
                    return 1
                username = line.strip()

            if not conn.write_line(username):
                logger.error("Failed to send username to the server")
                return 1

            receiver = threading.Thread(target=self._receive, args=(conn,), name="receiver", daemon=True)
            sender = threading.Thread(target=self._send, args=(conn,), name="sender", daemon=True)
            receiver.start()
            sender.start()

            self._done.wait()

        # The socket is closed now, so the receiver wakes up and exits
        receiver.join(self.timeout)
        return 0

    def _receive(self, conn: Connection):
        try:
            while True:
                line = conn.read_line()
                if line is None:
                    self._print(CLOSED)
                    break
                self._print(line)
        finally:
            self._done.set()

    def _send(self, conn: Connection):
        try:
            for line in iter(self.stdin.readline, ""):
                if not conn.write_line(line.rstrip("\r\n")):
                    logger.error("Failed to send input to the server")
                    break
        finally:
            self._done.set()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="ircchat-client",
        description="Terminal client for the ircchat server",
    )
    parser.add_argument("--host", "-H", default="localhost", help="Server host (default: localhost)")
    parser.add_argument("--port", "-p", type=int, default=9000, help="Server port (default: 9000)")
    parser.add_argument("--user", "-u", default=None, help="Username (asked for if omitted)")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    client = TerminalClient(args.host, args.port, username=args.user)
    return client.run()


if __name__ == "__main__":
    sys.exit(main())
