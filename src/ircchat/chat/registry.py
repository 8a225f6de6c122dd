"""
=============================================================================
CLIENT REGISTRY
=============================================================================

The authoritative in-memory mapping of registered clients:

    Connection ──► Client(username, role, connection)

=============================================================================
WHO MAY TOUCH IT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   WRITES   add() / remove() / clear()                               │
    │            └── EventLoop thread ONLY                                 │
    │                                                                      │
    │   READS    snapshot() / find() / in / len()                         │
    │            └── any thread (sessions run commands on their own       │
    │                thread, outside the event loop)                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every operation takes the same lock, and reads copy what they need while
holding it. A reader therefore sees the registry either entirely before
or entirely after a join/leave, never halfway through one.

Insertion order is kept (dicts are ordered), so lookups by username
return the EARLIEST registered client with that name.

=============================================================================
"""

import threading
from typing import Dict, List, Optional, Tuple

from ..core.connection import Connection
from .models import Client


class ClientRegistry:
    """Thread-safe mapping from connection to registered client."""

    def __init__(self):
        self._clients: Dict[Connection, Client] = {}
        self._lock = threading.Lock()

    # =========================================================================
    # MUTATIONS (event loop only)
    # =========================================================================

    def add(self, client: Client) -> None:
        with self._lock:
            self._clients[client.connection] = client

    def remove(self, connection: Connection) -> Optional[Client]:
        """
        Remove a client by connection.

        Returns:
            The removed client, or None if it was not registered.
        """
        with self._lock:
            return self._clients.pop(connection, None)

    def clear(self) -> List[Client]:
        """Remove every client and return them."""
        with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        return clients

    # =========================================================================
    # READS (any thread)
    # =========================================================================

    def snapshot(self) -> Tuple[Client, ...]:
        """An immutable copy of the current membership, in join order."""
        with self._lock:
            return tuple(self._clients.values())

    def find(self, username: str) -> Optional[Client]:
        """First registered client with this exact username, if any."""
        with self._lock:
            for client in self._clients.values():
                if client.username == username:
                    return client
        return None

    def usernames(self) -> List[str]:
        return [client.username for client in self.snapshot()]

    def __contains__(self, connection: Connection) -> bool:
        with self._lock:
            return connection in self._clients

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)
