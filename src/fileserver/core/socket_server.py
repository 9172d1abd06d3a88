"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

Creates the listening socket and runs the accept loop.

=============================================================================
SOCKET LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   socket()  →  setsockopt()  →  bind()  →  listen()  →  accept()   │
    │                                                            │         │
    │                                          ┌─────────────────┘         │
    │                                          ▼                           │
    │                                   handle the client                  │
    │                                   (fully, before the next accept)    │
    │                                          │                           │
    │                                          └──► back to accept()      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ONE CLIENT AT A TIME
=============================================================================

The connection handler runs inline on the accepting thread. While it runs,
new clients wait in the kernel's accept queue (up to `backlog` of them);
beyond that the OS refuses them.

There are no worker threads and no shared state between connections.

=============================================================================
STOPPING
=============================================================================

accept() polls with a 1-second timeout so the loop notices shutdown()
promptly. SIGINT (Ctrl+C) and SIGTERM call shutdown() when the server runs
on the main thread; elsewhere (e.g. in tests) call shutdown() directly.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Sequential TCP server.

    Usage:
        server = SocketServer(config)

        def handle_connection(conn: Connection):
            data = conn.read_request()
            ...

        server.start(handle_connection)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Server configuration (host, port, backlog, buffer size).

        The socket is created lazily in start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set when the accept loop has exited
        self._shutdown_event = threading.Event()
        # Set once the socket is listening
        self._ready_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        Once listening this is the real address, so port 0 in the config
        reports the port the OS picked.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create the listening socket with its options set."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # SO_REUSEADDR: restart immediately without "Address already in use"
        # while the previous socket sits in TIME_WAIT.
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Poll accept() so the loop can notice shutdown()
        sock.settimeout(1.0)

        return sock

    def _setup_signals(self):
        """Turn SIGTERM/SIGINT into a graceful shutdown (main thread only)."""
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(
        self,
        connection_handler: Callable[[Connection], None],
        once: bool = False,
    ):
        """
        Bind, listen and run the accept loop. BLOCKS until shutdown().

        Args:
            connection_handler: Called with each accepted Connection. Runs
                                to completion before the next accept().
            once: Stop after the first connection has been handled.

        Raises:
            OSError: If the socket cannot be bound or put into listen mode.
        """
        self._socket = self._create_socket()

        try:
            # bind() errors: port in use, or < 1024 without privileges
            self._socket.bind((self.config.host, self.config.port))
            self._socket.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Failed to listen on {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        host, port = self.address
        logger.info(f"Listening on {host}:{port} (backlog {self.config.backlog})")

        self._running = True
        self._shutdown_event.clear()
        self._setup_signals()
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler, once)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None], once: bool):
        """
        Accept and handle clients one after another.

        ┌─────────────────────────────────────────────────────────────────┐
        │   while running:                                                 │
        │       accept()              (1s timeout → check running again)  │
        │       wrap in Connection                                         │
        │       connection_handler(conn)    ← blocks until client is done │
        │       once? → stop                                               │
        └─────────────────────────────────────────────────────────────────┘
        """
        while self._running:
            logger.debug("Waiting for a new connection...")
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                # Socket closed under us, usually during shutdown
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Connection accepted from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
            )

            try:
                connection_handler(conn)
            except Exception as e:
                # One bad connection must not end the loop
                logger.exception(f"[{conn.id}] Unhandled error serving {client_address[0]}: {e}")
                conn.close()

            if once:
                logger.info("Single-connection mode, stopping")
                break

    def shutdown(self):
        """
        Ask the accept loop to stop. Idempotent; safe from any thread.

        The loop exits within about a second (the accept poll interval).
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._running = False
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready_event.clear()
        self._shutdown_event.set()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Wait until the socket is listening. True if it is."""
        return self._ready_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Wait for the accept loop to exit. True if it did."""
        return self._shutdown_event.wait(timeout)
