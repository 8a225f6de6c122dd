"""
=============================================================================
CORE TRANSPORT COMPONENTS
=============================================================================

The low-level building blocks under the chat layer:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer        Listening socket + accept loop                │
    │        │                                                             │
    │        ▼                                                             │
    │   Connection          One client: read_line() / write_line()        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Everything above this package sees a client only as a Connection.
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState

__all__ = [
    "SocketServer",     # TCP server - accepts connections
    "Connection",       # Line-oriented wrapper for a client socket
    "ConnectionState",  # Enum for connection lifecycle states
]
