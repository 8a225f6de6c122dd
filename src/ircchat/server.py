"""
=============================================================================
CHAT SERVER
=============================================================================

The orchestrator that ties the components together.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      CHAT SERVER ARCHITECTURE                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   ChatServer    │                          │
    │                        │  (Orchestrator) │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────────┐    │
    │    │ SocketServer │    │  EventLoop   │    │CommandDispatcher │    │
    │    │ (Networking) │    │ (Serializer) │    │  (Commands)      │    │
    │    └──────┬───────┘    └──────┬───────┘    └──────────────────┘    │
    │           │                   │                                     │
    │           ▼                   ▼                                     │
    │    ┌──────────────┐    ┌──────────────┐                            │
    │    │  Connection  │    │ClientSession │  (one thread per client)   │
    │    └──────────────┘    └──────────────┘                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
DATA FLOW
=============================================================================

    accept() ──► EventLoop.accept(conn) ──► ClientSession thread
                                                  │
                                   username line  │  Join ──► registry.add
                                                  │
                          chat line ──► Broadcast ──► every client
                          /command  ──► dispatcher (on session thread)
                                                  │
                               end of stream      │  Leave ──► registry.remove
                                                  ▼           + close

=============================================================================
"""

import logging
from typing import Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection
from .chat import ClientRegistry, CommandDispatcher, EventLoop
from .handlers import register_default_commands


logger = logging.getLogger(__name__)


class ChatServer:
    """
    Single-room chat server.

    =========================================================================
    USAGE
    =========================================================================

        server = ChatServer(ServerConfig(host="0.0.0.0", port=9000))

        # Optional: extra commands on top of the built-in five
        @server.command("/ping")
        def ping(ctx):
            ctx.reply("pong")

        server.run()  # Blocks until Ctrl+C / SIGTERM

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Uses defaults if not provided.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)

        self._registry = ClientRegistry()
        self._dispatcher = register_default_commands(CommandDispatcher())
        self._loop = EventLoop(self._registry, self._dispatcher)

        self._running = False

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def registry(self) -> ClientRegistry:
        return self._registry

    @property
    def dispatcher(self) -> CommandDispatcher:
        return self._dispatcher

    @property
    def event_loop(self) -> EventLoop:
        return self._loop

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """The (host, port) the server is bound to (or will bind to)."""
        return self._socket_server.address

    def command(self, name: str, admin_only: bool = False, usage: str = ""):
        """Register an extra command (decorator)."""
        return self._dispatcher.command(name, admin_only=admin_only, usage=usage)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start the server (blocking).

        Args:
            host: Override config host.
            port: Override config port.

        Raises:
            OSError: If the address cannot be bound.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()
        self._running = True

        logger.info(f"{self.config.server_name} starting on {self.config.host}:{self.config.port}")
        logger.debug(f"Commands: {', '.join(c.name for c in self._dispatcher.commands())}")

        self._loop.start()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server accepts connections. False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def stop(self):
        """Ask a running server to stop. run() returns shortly after."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("ircchat").setLevel(level)

    def _shutdown(self):
        """Stop the event loop and close every client connection."""
        logger.info("Shutting down server...")
        self._running = False

        self._loop.shutdown()

        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Called by SocketServer on the accept thread for every connection."""
        logger.debug(f"[{conn.id}] New connection from {conn.remote_address}")
        self._loop.accept(conn)
