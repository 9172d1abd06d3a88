"""
=============================================================================
FILE SERVER
=============================================================================

Ties the pieces together into a running server.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   FileServer    │                          │
    │                        │ (Orchestrator)  │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            │                    │                    │              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────────┐     │
    │    │ SocketServer │    │RequestParser │    │StaticFileHandler │     │
    │    │ (Networking) │    │(Request line)│    │  (Files/errors)  │     │
    │    └──────┬───────┘    └──────────────┘    └──────────────────┘     │
    │           │                                                          │
    │           ▼                                                          │
    │    ┌──────────────┐                                                  │
    │    │  Connection  │                                                  │
    │    └──────────────┘                                                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. ACCEPT       SocketServer accepts the next client
    2. READ         Connection reads one buffer (up to the first line break)
    3. PARSE        RequestParser → HTTPRequest, or 400
    4. HANDLE       StaticFileHandler → file response or 404/500/501/400
    5. SEND         Connection writes headers, then streams the file
    6. CLOSE        File and socket closed, back to step 1

=============================================================================
"""

import logging
from typing import Optional

from .config import ServerConfig
from .core import SocketServer, Connection
from .handlers import StaticFileHandler
from .http import (
    HTTPRequest, RequestParser, HTTPParseError, HTTPResponse,
    HTTPStatus, error_page, internal_error, response_version,
)


logger = logging.getLogger(__name__)


class FileServer:
    """
    Single-connection HTTP/1.1 file server.

    Usage:
        config = load_config("/etc/fileserver.ini")
        server = FileServer(config)
        server.run()            # Blocks until Ctrl+C / SIGTERM

    In tests, run() on a background thread and call shutdown() to stop it.
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Defaults are used if not provided.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._parser = RequestParser(max_line_length=self.config.buffer_size)
        self._handler = StaticFileHandler.from_config(self.config)

        self._running = False

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port); the real port once listening."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, once: bool = False):
        """
        Start serving (blocking).

        Args:
            once: Serve a single connection, then return.

        Raises:
            OSError: If the listening socket cannot be set up.
        """
        self._setup_logging()

        root = self.config.root_path
        logger.info(f"Server root set to {root}")
        if not root.is_dir():
            logger.warning(f"Root directory {root} does not exist; every request will be a 404")

        self._running = True
        try:
            self._socket_server.start(self._handle_connection, once=once)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._running = False
            logger.info("Server shutting down.")

    def shutdown(self):
        """Stop accepting connections. The current client is finished first."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is up (for tests and embedding)."""
        return self._socket_server.wait_until_ready(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_for_shutdown(timeout)

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("fileserver").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Serve one client from first byte to closed socket.

        Called by SocketServer on the accepting thread; the next client is
        not accepted until this returns. Client errors are logged and the
        connection is closed; anything unexpected propagates to the accept
        loop, which logs it and moves on to the next client.
        """
        with conn:  # Context manager ensures the socket is closed
            try:
                raw_request = conn.read_request()
            except TimeoutError:
                logger.warning(f"[{conn.id}] Timed out waiting for request from {conn.client_ip}")
                return
            except OSError as e:
                logger.warning(f"[{conn.id}] Error reading from {conn.client_ip}: {e}")
                return

            if raw_request is None:
                logger.info(f"[{conn.id}] Client disconnected without sending data")
                return

            request: Optional[HTTPRequest] = None
            try:
                request = self._parser.parse(raw_request, conn.address)
            except HTTPParseError as e:
                logger.warning(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                response = error_page(HTTPStatus(e.status_code), "Your request could not be parsed.")
            else:
                logger.debug(f"[{conn.id}] Parsed request: {request!r}")
                response = self._dispatch(conn, request)

            try:
                sent = conn.send_response(response)
            finally:
                response.close()

            self._log_request(conn, request, response, sent)

    def _dispatch(self, conn: Connection, request: HTTPRequest) -> HTTPResponse:
        """Run the handler, turning unexpected errors into a 500 page."""
        try:
            return self._handler.handle(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error: {e}")
            return internal_error(version=response_version(request.version))

    def _log_request(
        self,
        conn: Connection,
        request: Optional[HTTPRequest],
        response: HTTPResponse,
        sent: bool,
    ):
        """One access-log line per request: client, request line, status, size."""
        line = request.request_line if request else "-"
        outcome = f"{int(response.status)} {response.content_length}"
        if not sent:
            outcome += " (incomplete)"
        logger.info(f'{conn.client_ip} "{line}" {outcome}')

