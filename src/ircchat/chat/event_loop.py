"""
=============================================================================
EVENT LOOP
=============================================================================

The single serialization point of the chat server. Every registry
mutation and every broadcast happens here, on ONE thread, one event at a
time.

=============================================================================
WHY A SINGLE THREAD?
=============================================================================

Many session threads want to change shared state at the same time:

    alice's session  ──► "alice joined"
    bob's session    ──► "bob says hi, tell everyone"
    carol's session  ──► "carol hung up"

Instead of every session locking and mutating the registry itself, each
one drops an EVENT into a FIFO queue and the loop applies them in order:

    ┌─────────────┐
    │ Session 1   │──┐
    └─────────────┘  │     ┌──────────────────┐     ┌──────────────────┐
    ┌─────────────┐  ├────►│  queue.Queue     │────►│  EventLoop       │
    │ Session 2   │──┤     │  (unbounded FIFO)│     │  (one thread)    │
    └─────────────┘  │     └──────────────────┘     │                  │
    ┌─────────────┐  │                              │  Join  → add     │
    │ Session N   │──┘                              │  Leave → remove  │
    └─────────────┘                                 │          + close │
                                                    │  Broadcast → all │
                                                    └──────────────────┘

    - No two registry mutations overlap.
    - A broadcast is never torn by a join/leave: it iterates a snapshot
      taken on the loop thread, which is the only writer.
    - Events from one producer are applied in the order it sent them.

=============================================================================
EVENTS
=============================================================================

    Join(client)        A session finished the username handshake
    Leave(connection)   A session ended, or an admin kicked someone
    Broadcast(text)     Deliver one line to every registered client

Submitting an event never blocks and never fails while the loop runs.

=============================================================================
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Optional, Set

from ..core.connection import Connection
from .models import Client
from .registry import ClientRegistry
from .session import ClientSession


logger = logging.getLogger(__name__)


# =============================================================================
# EVENT TYPES
# =============================================================================

@dataclass(frozen=True)
class Join:
    """
    Admit a registered client.

    Attributes:
        client: The record built from the handshake.
        admitted: Set by the loop once the client is in the registry.
    """
    client: Client
    admitted: threading.Event = field(default_factory=threading.Event, compare=False)


@dataclass(frozen=True)
class Leave:
    """Evict a connection (no-op if it is not registered) and close it."""
    connection: Connection


@dataclass(frozen=True)
class Broadcast:
    """Send one line to every registered client."""
    text: str


class EventLoop(threading.Thread):
    """
    Owner of the client registry.

    Usage:
        loop = EventLoop(registry, dispatcher)
        loop.start()

        loop.accept(conn)          # from the accept thread
        loop.broadcast("hi")       # from any thread
        loop.disconnect(conn)      # from any thread

        loop.shutdown()            # closes every connection handle
    """

    def __init__(
        self,
        registry: Optional[ClientRegistry] = None,
        dispatcher=None,
        admission_poll: float = 1.0,
    ):
        """
        Args:
            registry: Registry to own. A fresh one if not given.
            dispatcher: CommandDispatcher handed to every session.
            admission_poll: How often a session waiting for admission
                            checks whether the loop is still alive.
        """
        super().__init__(name="EventLoop", daemon=True)

        self.registry = registry if registry is not None else ClientRegistry()
        self.dispatcher = dispatcher
        self.admission_poll = admission_poll

        self._queue: "queue.Queue" = queue.Queue()
        self._stopped = threading.Event()
        # Nothing may be queued behind the stop marker
        self._submit_lock = threading.Lock()

        # Every accepted connection not yet evicted, registered or not.
        # Lets shutdown() close handles still stuck in the handshake.
        self._connections: Set[Connection] = set()
        self._connections_lock = threading.Lock()

        self._handlers = {
            Join: self._handle_join,
            Leave: self._handle_leave,
            Broadcast: self._handle_broadcast,
        }

        self.events_processed = 0

    @property
    def is_running(self) -> bool:
        return self.is_alive() and not self._stopped.is_set()

    # =========================================================================
    # PUBLIC API (any thread)
    # =========================================================================

    def accept(self, connection: Connection) -> ClientSession:
        """
        Admit a new connection and start its session.

        The username handshake runs on the session's own thread so a
        client that connects and says nothing cannot stall the loop. The
        session submits a Join once it has a username, then waits for
        the loop to register it before reading chat input.

        Returns:
            The started session.
        """
        with self._connections_lock:
            self._connections.add(connection)

        session = ClientSession(connection, self, self.dispatcher)
        session.start()
        return session

    def admit(self, client: Client) -> threading.Event:
        """
        Submit a Join for a client that completed the handshake.

        Returns:
            An event that is set once the client is registered.
        """
        event = Join(client)
        self._submit(event)
        return event.admitted

    def disconnect(self, connection: Connection) -> None:
        """Submit a Leave. Safe to call for connections already gone."""
        self._submit(Leave(connection))

    def broadcast(self, text: str) -> None:
        """Submit a Broadcast of one line."""
        self._submit(Broadcast(text))

    def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every event submitted so far has been processed.

        Only meaningful while the loop runs.

        Returns:
            True if the queue drained, False on timeout.
        """
        done = threading.Event()

        def _wait():
            self._queue.join()
            done.set()

        threading.Thread(target=_wait, name="EventLoop-drain", daemon=True).start()
        return done.wait(timeout)

    def _submit(self, event) -> None:
        with self._submit_lock:
            if not self._stopped.is_set():
                self._queue.put(event)
                return
        logger.debug(f"Event loop stopped, dropping {type(event).__name__}")

    # =========================================================================
    # LOOP (event loop thread)
    # =========================================================================

    def run(self):
        """
        Process events until the poison pill (None) arrives.

        An exception from one event is logged and the loop moves on: no
        single client can take the server down.
        """
        logger.info("Ready for receiving new clients")

        while True:
            event = self._queue.get()
            try:
                if event is None:
                    break

                handler = self._handlers[type(event)]
                handler(event)
                self.events_processed += 1

            except Exception as e:
                logger.exception(f"Failed to process {type(event).__name__}: {e}")

            finally:
                self._queue.task_done()

        logger.debug(f"Event loop stopped after {self.events_processed} events")

    def _handle_join(self, event: Join):
        client = event.client

        if client.connection.is_closed:
            # Connection died between handshake and admission
            event.admitted.set()
            return

        self.registry.add(client)
        logger.info(f"New connected user [{client.username}]")

        if client.is_admin:
            logger.info(f"[{client.username}] was promoted as the channel ADMIN")

        event.admitted.set()

    def _handle_leave(self, event: Leave):
        connection = event.connection

        client = self.registry.remove(connection)
        if client is not None:
            logger.info(f"[{client.username}] left")

        with self._connections_lock:
            self._connections.discard(connection)

        connection.close()

    def _handle_broadcast(self, event: Broadcast):
        for client in self.registry.snapshot():
            if not client.send(event.text):
                logger.warning(f"Message sending failed to [{client.username}]")

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        """
        Stop the loop and close every connection handle.

        Events still queued ahead of the stop are processed first;
        events submitted afterwards are dropped. Idempotent.
        """
        with self._submit_lock:
            if self._stopped.is_set():
                return
            self._stopped.set()
            self._queue.put(None)

        if self.is_alive() and threading.current_thread() is not self:
            self.join(timeout)

        clients = self.registry.clear()

        with self._connections_lock:
            connections = set(self._connections)
            self._connections.clear()

        for client in clients:
            connections.add(client.connection)

        closed = sum(1 for conn in connections if conn.close())
        logger.info(f"Event loop shut down, closed {closed} connections")
