"""
=============================================================================
CLIENT SESSION
=============================================================================

One thread per connected client. The session owns the READ side of its
connection and turns what the client types into actions:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Session Lifecycle                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. HANDSHAKE                                                       │
    │      read_line() → username        (None → give up, never joined)   │
    │      loop.admit(client)            wait until registered             │
    │                                                                      │
    │   2. READ LOOP                                                       │
    │      read_line()                                                     │
    │        ├── None            → stop                                    │
    │        ├── ""              → ignore                                  │
    │        ├── "/cmd args..."  → dispatcher (replies to issuer only)    │
    │        └── "text"          → loop.broadcast("<username>> text")     │
    │                                                                      │
    │   3. TERMINATION                                                     │
    │      loop.disconnect(connection)   EXACTLY once, whatever happened  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The session never touches the registry's contents directly: joins,
leaves and broadcasts go through the event loop. Commands read the
registry through its locked snapshot API.

=============================================================================
"""

import logging
import threading
from typing import Optional

from ..core.connection import Connection
from .errors import UnknownCommandError
from .models import Client


logger = logging.getLogger(__name__)

COMMAND_PREFIX = "/"


class ClientSession(threading.Thread):
    """
    Reader thread for one client connection.

    Attributes:
        connection: The connection this session reads from.
        client: The registered client, once the handshake succeeded.
        lines_handled: Non-empty lines processed after registration.
    """

    def __init__(self, connection: Connection, loop, dispatcher=None):
        """
        Args:
            connection: Connection to read from.
            loop: The EventLoop that owns the registry.
            dispatcher: CommandDispatcher for "/" lines. Without one,
                        every command is answered as invalid.
        """
        super().__init__(name=f"Session-{connection.id}", daemon=True)

        self.connection = connection
        self.loop = loop
        self.dispatcher = dispatcher
        self.client: Optional[Client] = None
        self.lines_handled = 0

    def run(self):
        try:
            self.client = self._register()
            if self.client is not None:
                self._read_loop(self.client)
        except Exception as e:
            logger.exception(f"[{self.connection.id}] Session error: {e}")
        finally:
            self.loop.disconnect(self.connection)

    # =========================================================================
    # HANDSHAKE
    # =========================================================================

    def _register(self) -> Optional[Client]:
        """
        Read the username line and wait for the loop to admit us.

        Returns:
            The registered client, or None if the stream ended first or
            the loop stopped before admitting us.
        """
        line = self.connection.read_line()
        if line is None:
            logger.info(
                f"[{self.connection.id}] Connection from {self.connection.remote_address} "
                f"closed before registration"
            )
            return None

        client = Client.register(line.strip(), self.connection)
        admitted = self.loop.admit(client)

        while not admitted.wait(self.loop.admission_poll):
            if not self.loop.is_running or self.connection.is_closed:
                return None

        # The loop skips a Join whose handle died while it waited in the queue
        if self.connection not in self.loop.registry:
            return None

        return client

    # =========================================================================
    # READ LOOP
    # =========================================================================

    def _read_loop(self, client: Client):
        while True:
            line = self.connection.read_line()
            if line is None:
                logger.debug(f"[{client.username}] Connection is closed")
                break

            self.handle_line(client, line)

    def handle_line(self, client: Client, line: str) -> None:
        """
        Classify one input line and act on it.

        Args:
            client: The client that sent the line.
            line: The raw line, without its terminator.
        """
        text = line.strip()
        if not text:
            return

        self.lines_handled += 1

        if text.startswith(COMMAND_PREFIX):
            self._run_command(client, text.split())
        else:
            self.loop.broadcast(f"{client.username}> {text}")

    def _run_command(self, client: Client, tokens):
        if self.dispatcher is None:
            client.send(UnknownCommandError(tokens[0]).message)
            return

        self.dispatcher.dispatch(client, tokens, self.loop.registry, self.loop)
