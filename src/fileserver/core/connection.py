"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket: read the request, write the response,
close.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. A client that sends

    GET /index.html HTTP/1.1\r\n
    Host: localhost\r\n
    \r\n

may arrive as one recv() or as several:

    First recv():  "GET /ind"
    Second recv(): "ex.html HTTP/1.1\r\nHost: ..."

So we keep reading until the request line is complete (a line break has
arrived), the buffer is full, or the client stops sending.

=============================================================================
CONNECTION LIFECYCLE
=============================================================================

    ┌──────┐   read_request()   ┌─────────┐   send_response()   ┌─────────┐
    │ NEW  │ ─────────────────► │ READING │ ──────────────────► │ WRITING │
    └──────┘                    └─────────┘                     └────┬────┘
                                                                     │
                                                              close()│
                                                                     ▼
                                                                ┌────────┐
                                                                │ CLOSED │
                                                                └────────┘

There is no keep-alive: every response says "Connection: close" and the
socket is closed right after it.

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional

from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, used for logging and debugging."""
    NEW = "new"              # Just accepted
    READING = "reading"      # Reading the request
    WRITING = "writing"      # Sending the response
    CLOSING = "closing"      # Shutdown sequence in progress
    CLOSED = "closed"        # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short connection identifier for log lines.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
        bytes_sent: Body bytes written so far.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    bytes_sent: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 1024
    timeout: Optional[float] = 30.0

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one buffer's worth of request from the socket.

        Stops at whichever comes first:

            1. A line break has arrived (the request line is complete)
            2. buffer_size bytes have been read
            3. The client closed its side

        Header lines after the request line may or may not be included;
        nothing downstream looks at them.

        Returns:
            The bytes read, or None if the client sent nothing.

        Raises:
            TimeoutError: If the client stalls longer than `timeout`.
        """
        self.state = ConnectionState.READING
        data = b""

        try:
            while len(data) < self.buffer_size and b"\n" not in data:
                chunk = self._recv(self.buffer_size - len(data))
                if not chunk:
                    break  # Client closed its side
                data += chunk
        except socket.timeout:
            raise TimeoutError("Request read timeout")

        return data or None

    def _recv(self, size: int) -> bytes:
        """socket.recv() that maps an abrupt disconnect to end-of-stream."""
        try:
            return self.socket.recv(size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, response: HTTPResponse) -> bool:
        """
        Write a response: headers, in-memory body, then the file stream.

        The file is sent in buffer_size chunks so large files never sit in
        memory whole.

        Args:
            response: Response to send. Its stream is read but not closed.

        Returns:
            True if everything was sent, False if the client went away.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(response.to_bytes())
            self.bytes_sent += len(response.body)

            if response.stream is not None:
                while True:
                    chunk = response.stream.read(self.buffer_size)
                    if not chunk:
                        break
                    self.socket.sendall(chunk)
                    self.bytes_sent += len(chunk)

            return True
        except (ConnectionResetError, BrokenPipeError, socket.timeout, OSError) as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): send FIN, telling the client we're done
        2. Drain whatever the client still sends (unread headers)
        3. close(): release the file descriptor

        Draining avoids an RST wiping out the response before the client
        has read it.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except (socket.timeout, OSError):
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
