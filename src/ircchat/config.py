"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the chat server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m ircchat --port 9001                             │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── IRC_PORT=9001 python -m ircchat                           │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The bind address (host, port) is handed to the socket layer as-is. If it
is wrong, bind() says so; we don't second-guess the OS.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class ServerConfig:
    """
    Configuration for the chat server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog

    CONNECTION SETTINGS
    - buffer_size, timeout, max_line_length

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "localhost"
    """
    The address to bind to.
    - "localhost" - Local clients only
    - "0.0.0.0" - All network interfaces
    """

    port: int = 9000
    """
    The port number to listen on. 0 lets the OS pick a free port.
    """

    backlog: int = 128
    """
    Maximum number of queued connections waiting for accept().
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONNECTION SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    buffer_size: int = 4096
    """
    How many bytes a connection asks recv() for at once.
    """

    timeout: Optional[float] = 5.0
    """
    Per-connection socket timeout in seconds.

    Bounds how long a write to one slow client may stall a broadcast, and
    how often a blocked reader wakes up to check whether its handle was
    closed. A read timeout is NOT a disconnect: idle chat clients are
    normal. None = fully blocking sockets.
    """

    max_line_length: int = 64 * 1024
    """
    Longest line (in bytes) a client may send before it is disconnected.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "irc-server"
    """
    Name used in the startup log line. Replies to clients carry the fixed
    "irc-server >" prefix of the wire protocol, whatever this is set to.
    """

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        IRC_HOST        Server host (default: localhost)
        IRC_PORT        Server port (default: 9000)
        IRC_TIMEOUT     Socket timeout in seconds (default: 5)
        IRC_LOG_LEVEL   Logging level (default: INFO)

        =====================================================================
        """
        return cls(
            host=os.getenv("IRC_HOST", "localhost"),
            port=int(os.getenv("IRC_PORT", "9000")),
            timeout=float(os.getenv("IRC_TIMEOUT", "5")),
            log_level=os.getenv("IRC_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values (fail fast, at startup).

        Raises:
            ValueError: If a setting is out of range.
        """
        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_line_length < 1:
            raise ValueError("max_line_length must be >= 1")

        if self.backlog < 0:
            raise ValueError("backlog must be >= 0")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Invalid log level: {self.log_level}")
