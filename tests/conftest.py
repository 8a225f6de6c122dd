"""
pytest configuration and fixtures.
"""

import socket
import threading
import time
from typing import Callable, Generator, List, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ircchat import ChatServer, ServerConfig
from ircchat.core import Connection
from ircchat.chat import Client, ClientRegistry, CommandDispatcher, EventLoop
from ircchat.handlers import register_default_commands


def wait_for(predicate: Callable[[], bool], timeout: float = 3.0, interval: float = 0.01) -> bool:
    """Poll until predicate() is true. Returns the last result."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class Peer:
    """The far end of a connection, as a chat client would see it."""

    def __init__(self, sock: socket.socket, timeout: float = 3.0):
        self.sock = sock
        self.sock.settimeout(timeout)
        self._buffer = b""

    def send(self, text: str):
        self.sock.sendall((text + "\n").encode("utf-8"))

    def send_raw(self, data: bytes):
        self.sock.sendall(data)

    def read_line(self) -> Optional[str]:
        """Next line from the server, or None if it hung up."""
        while b"\n" not in self._buffer:
            chunk = self.sock.recv(4096)
            if not chunk:
                return None
            self._buffer += chunk
        line, self._buffer = self._buffer.split(b"\n", 1)
        return line.decode("utf-8")

    def read_lines(self, count: int) -> List[str]:
        return [self.read_line() for _ in range(count)]

    def assert_silent(self, wait: float = 0.2):
        """Fail if anything arrives within `wait` seconds."""
        assert self._buffer == b""
        previous = self.sock.gettimeout()
        self.sock.settimeout(wait)
        try:
            data = self.sock.recv(4096)
        except socket.timeout:
            return
        finally:
            self.sock.settimeout(previous)
        assert data == b"", f"unexpected data: {data!r}"

    def is_hung_up(self) -> bool:
        """True once the server closed its side."""
        try:
            while True:
                chunk = self.sock.recv(4096)
                if not chunk:
                    return True
                self._buffer += chunk
        except socket.timeout:
            return False
        except OSError:
            return True

    def read_all(self) -> bytes:
        """Every byte until the server hangs up, ignoring line framing."""
        data, self._buffer = self._buffer, b""
        try:
            while True:
                chunk = self.sock.recv(65536)
                if not chunk:
                    break
                data += chunk
        except OSError:
            pass
        return data

    def close(self):
        try:
            self.sock.close()
        except OSError:
            pass


def stall(conn: Connection, peer: Peer, size: int = 4096):
    """Shrink both socket buffers so a peer that stops reading blocks writes quickly."""
    conn.socket.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, size)
    peer.sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, size)


class RecordingLoop:
    """Stands in for EventLoop and records what a session asks of it."""

    admission_poll = 0.05
    is_running = True

    def __init__(self, registry: Optional[ClientRegistry] = None):
        self.registry = registry if registry is not None else ClientRegistry()
        self.admitted: List[Client] = []
        self.broadcasts: List[str] = []
        self.disconnects: List[Connection] = []

    def admit(self, client: Client) -> threading.Event:
        self.admitted.append(client)
        self.registry.add(client)
        event = threading.Event()
        event.set()
        return event

    def broadcast(self, text: str):
        self.broadcasts.append(text)

    def disconnect(self, connection: Connection):
        self.disconnects.append(connection)


@pytest.fixture
def connection_pair() -> Generator[Callable[..., Tuple[Connection, Peer]], None, None]:
    """
    Factory for (Connection, Peer) pairs over socket.socketpair().

    Each call gets a distinct fake remote address 10.0.0.1:5001, :5002, ...
    """
    made = []

    def make(timeout: float = 0.2, **kwargs) -> Tuple[Connection, Peer]:
        server_side, client_side = socket.socketpair()
        address = ("10.0.0.1", 5001 + len(made))
        conn = Connection(socket=server_side, address=address, timeout=timeout, **kwargs)
        peer = Peer(client_side)
        made.append((conn, peer))
        return conn, peer

    yield make

    for conn, peer in made:
        conn.close()
        peer.close()


@pytest.fixture
def make_client(connection_pair) -> Callable[..., Tuple[Client, Peer]]:
    """Factory for registered-looking Client records with a Peer each."""
    def make(username: str) -> Tuple[Client, Peer]:
        conn, peer = connection_pair()
        return Client.register(username, conn), peer
    return make


@pytest.fixture
def dispatcher() -> CommandDispatcher:
    return register_default_commands(CommandDispatcher())


@pytest.fixture
def chat_loop(dispatcher) -> Generator[EventLoop, None, None]:
    """A running EventLoop with the built-in commands."""
    loop = EventLoop(ClientRegistry(), dispatcher, admission_poll=0.05)
    loop.start()
    yield loop
    loop.shutdown()


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class RunningServer:
    """Test server helper that runs ChatServer in a background thread."""

    def __init__(self, server: ChatServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None
        self._peers: List[Peer] = []

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def close_peers(self):
        for peer in self._peers:
            peer.close()

    @property
    def port(self) -> int:
        return self.server.address[1]

    def connect(self, username: Optional[str] = None) -> Peer:
        """Open a TCP connection; register if a username is given."""
        sock = socket.create_connection(("127.0.0.1", self.port), timeout=3.0)
        peer = Peer(sock)
        self._peers.append(peer)
        if username is not None:
            count = len(self.server.registry)
            peer.send(username)
            assert wait_for(lambda: len(self.server.registry) > count)
        return peer


@pytest.fixture
def chat_server() -> Generator[RunningServer, None, None]:
    """A ChatServer on an ephemeral port."""
    server = ChatServer(ServerConfig(
        host="127.0.0.1",
        port=0,
        timeout=0.2,
        log_level="WARNING",
    ))
    running = RunningServer(server)
    running.start()
    yield running
    running.stop()
    running.close_peers()
