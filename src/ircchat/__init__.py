"""
=============================================================================
IRCCHAT - Single-Room Line-Based Chat Server
=============================================================================

A small IRC-style chat service over raw TCP sockets. Clients connect,
send a username, and then everything they type is either a chat line
(broadcast to the room) or a "/command".

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      IRCCHAT ARCHITECTURE                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. TRANSPORT                                                      │
    │      - TCP accept loop                                              │
    │      - Line-buffered connection handles                             │
    │                                                                      │
    │   2. EVENT LOOP                                                     │
    │      - One thread owns the client registry                         │
    │      - Join / Leave / Broadcast events, strictly FIFO              │
    │                                                                      │
    │   3. SESSIONS                                                       │
    │      - One reader thread per client                                 │
    │      - Username handshake, then chat lines and commands            │
    │                                                                      │
    │   4. COMMANDS                                                       │
    │      - /users /msg /time /user for everyone                         │
    │      - /kick for the client registered as "admin"                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    ircchat/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # Server CLI (python -m ircchat)
    ├── server.py            # ChatServer orchestrator
    ├── config.py            # ServerConfig dataclass
    ├── terminal.py          # Interactive terminal client
    ├── core/                # Transport
    │   ├── socket_server.py # TCP accept loop
    │   └── connection.py    # Line-oriented connection handle
    ├── chat/                # Chat state and concurrency
    │   ├── models.py        # Client, Role
    │   ├── registry.py      # ClientRegistry
    │   ├── event_loop.py    # EventLoop + events
    │   ├── session.py       # ClientSession reader thread
    │   ├── dispatcher.py    # CommandDispatcher
    │   └── errors.py        # CommandError hierarchy
    └── handlers/
        └── commands.py      # The built-in commands

=============================================================================
QUICK START
=============================================================================

    # Terminal 1
    python -m ircchat --port 9000

    # Terminal 2, 3, ...
    ircchat-client --port 9000 --user alice
    ircchat-client --port 9000 --user admin

=============================================================================
"""

__version__ = "1.0.0"

from .server import ChatServer
from .config import ServerConfig

__all__ = ["ChatServer", "ServerConfig", "__version__"]
