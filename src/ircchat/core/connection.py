"""
=============================================================================
CONNECTION HANDLE
=============================================================================

This module wraps one client's socket with a line-oriented API:
"readable lines in, writable lines out".

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. A client that sends

    "hello\n"  then  "world\n"

may arrive as ANY of:

    recv() → "hello\nworld\n"     (both combined)
    recv() → "hel"                (partial)
    recv() → "lo\nworld\n"        (rest of first + second)

So we buffer received bytes and cut lines at the "\n" delimiter. Bytes
after the delimiter stay in the buffer for the next read_line() call.

=============================================================================
ONE READER, MANY WRITERS
=============================================================================

    ┌──────────────────────┐         ┌──────────────────────────────┐
    │  ClientSession       │ reads   │                              │
    │  (one thread)        │────────►│                              │
    └──────────────────────┘         │         Connection           │
    ┌──────────────────────┐ writes  │                              │
    │  EventLoop broadcast │────────►│   _write_lock serializes     │
    └──────────────────────┘         │   whole lines so they never  │
    ┌──────────────────────┐ writes  │   interleave on the wire     │
    │  Other sessions      │────────►│                              │
    │  (/msg, /kick ...)   │         │                              │
    └──────────────────────┘         └──────────────────────────────┘

Only the owning session ever calls read_line(). Anyone may call
write_line(). Transport failures never raise out of this class: reads
return None and writes return False. A failed write also closes the
handle: a line cut off mid-send leaves nothing safe to write after it.

=============================================================================
"""

import socket
import threading
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states."""
    OPEN = "open"        # Socket usable for reading and writing
    CLOSED = "closed"    # Socket shut down and released


@dataclass(eq=False)
class Connection:
    """
    A bidirectional, line-delimited client connection.

    Compared by identity (eq=False) so a Connection can key the client
    registry: two handles are the same client only if they are the same
    object.

    Attributes:
        socket: The connected client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier (for logging).
        state: Current connection state.
        lines_read: Number of complete lines read so far.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.OPEN
    lines_read: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 4096
    timeout: Optional[float] = 5.0
    max_line_length: int = 64 * 1024
    encoding: str = "utf-8"

    _buffer: bytes = field(default=b"", repr=False)
    _write_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _close_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self):
        # The timeout doubles as the write deadline and the read poll interval
        self.socket.settimeout(self.timeout)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def remote_address(self) -> str:
        """The peer address as "ip:port"."""
        return f"{self.client_ip}:{self.client_port}"

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def read_line(self) -> Optional[str]:
        """
        Read one line from the socket (blocking).

        ┌─────────────────────────────────────────────────────────────────┐
        │                     read_line() Flow                            │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   while no "\n" in buffer:                                       │
        │       closed?          → return None                             │
        │       recv() → chunk                                             │
        │         ├── timeout    → loop again (idle client is fine)        │
        │         ├── error      → return None                             │
        │         └── b""        → return None (peer closed)               │
        │       buffer += chunk                                            │
        │       too long?        → return None                             │
        │                                                                  │
        │   cut line at "\n", keep the rest in buffer                      │
        │   strip trailing "\r", decode                                    │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘

        Returns:
            The line without its terminator, or None when the stream is
            over (peer closed, read error, handle closed, line too long).
            A partial line left when the peer closes is discarded.
        """
        while b"\n" not in self._buffer:
            if self.is_closed:
                return None

            try:
                chunk = self.socket.recv(self.buffer_size)
            except socket.timeout:
                continue
            except OSError as e:
                if not self.is_closed:
                    logger.debug(f"[{self.id}] Read failed: {e}")
                return None

            if not chunk:
                return None

            self._buffer += chunk

            if len(self._buffer) > self.max_line_length and b"\n" not in self._buffer:
                logger.warning(
                    f"[{self.id}] Line exceeds {self.max_line_length} bytes, dropping connection"
                )
                return None

        raw, self._buffer = self._buffer.split(b"\n", 1)
        self.lines_read += 1

        if raw.endswith(b"\r"):
            raw = raw[:-1]

        return raw.decode(self.encoding, errors="replace")

    # =========================================================================
    # WRITING
    # =========================================================================

    def write_line(self, text: str) -> bool:
        """
        Send one line (text + "\n") to the client.

        The write lock keeps lines from concurrent writers whole. sendall()
        is bounded by the socket timeout, so a stuck client costs a caller
        at most `timeout` seconds, once.

        A failed send may already have put part of the line on the wire.
        Nothing can follow a torn line, so the connection is closed: later
        writes fail fast and the owning session sees end-of-stream.

        Returns:
            True if the line was sent, False if the connection is gone.
        """
        if self.is_closed:
            return False

        data = (text + "\n").encode(self.encoding)

        with self._write_lock:
            try:
                self.socket.sendall(data)
                return True
            except (socket.timeout, OSError) as e:
                logger.debug(f"[{self.id}] Send failed: {e}")

        self.close()
        return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> bool:
        """
        Close the connection. Safe to call any number of times.

        shutdown(SHUT_RDWR) comes first: it wakes a session thread blocked
        in recv() on this socket with end-of-stream, something a bare
        close() does not reliably do.

        Returns:
            True if this call closed the socket, False if already closed.
        """
        with self._close_lock:
            if self.is_closed:
                return False
            self.state = ConnectionState.CLOSED

        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.close()
        except OSError:
            pass

        logger.debug(f"[{self.id}] Connection closed after {self.lines_read} lines")
        return True

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
