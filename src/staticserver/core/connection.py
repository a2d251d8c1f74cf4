"""
=============================================================================
CONNECTION
=============================================================================

Wraps one accepted client socket.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

    Client sends:                       Server recv() may return:
        "GET / HTTP/1.1\\r\\n"             "GET / HT"
        "Host: x\\r\\n\\r\\n"                 "TP/1.1\\r\\nHost: x\\r\\n\\r\\nGET /a"
        "GET /a.css HTTP/1.1\\r\\n..."      ...

Instead of buffering recv() chunks by hand, we let the standard library
do it: socket.makefile("rb") gives a buffered reader whose readline()
returns exactly one line no matter how TCP chopped the bytes up. Bytes of
a pipelined second request stay in that buffer until the parser asks for
them.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         Connection                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │   socket ──┬── rfile  (buffered, line reads)  ──► RequestParser     │
    │            └── wfile  (buffered writes)       ◄── ResponseWriter    │
    │                                                                      │
    │   settimeout(idle_timeout): a read blocked longer than this raises  │
    │   socket.timeout, which the handler treats as "client went away"    │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from typing import BinaryIO, Optional


logger = logging.getLogger(__name__)

# Bounds on what close() reads from a peer that keeps sending.
DRAIN_TIMEOUT = 0.5
DRAIN_LIMIT = 64 * 1024


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        idle_timeout: Seconds a read may block before socket.timeout.
        id: Short unique identifier (for logging).
        requests_handled: Responses sent on this connection.
    """

    socket: socket.socket
    address: tuple[str, int]
    idle_timeout: Optional[float] = 10.0

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    requests_handled: int = 0

    rfile: BinaryIO = field(init=False, repr=False)
    wfile: BinaryIO = field(init=False, repr=False)
    _closed: bool = field(default=False, init=False, repr=False)

    def __post_init__(self):
        # Accepted sockets inherit nothing useful from the listener;
        # set the per-read timeout explicitly.
        self.socket.settimeout(self.idle_timeout)
        self.rfile = self.socket.makefile("rb")
        self.wfile = self.socket.makefile("wb")

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        """Client identifier used for connection tracking."""
        return self.address[0]

    @property
    def closed(self) -> bool:
        return self._closed

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection. Safe to call more than once.

        ┌─────────────────────────────────────────────────────────────────┐
        │   1. flush/close wfile   (pending response bytes go out)       │
        │   2. close rfile                                                │
        │   3. shutdown(SHUT_WR)   (client sees EOF after our response)   │
        │   4. drain briefly       (bounded in time and bytes)            │
        │   5. close the socket    (release the file descriptor)          │
        └─────────────────────────────────────────────────────────────────┘

        Every step tolerates a peer that has already gone away.
        """
        if self._closed:
            return
        self._closed = True

        for stream in (self.wfile, self.rfile):
            try:
                stream.close()
            except OSError as e:
                logger.debug(f"[{self.id}] Stream close failed: {e}")

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already disconnected

        try:
            self._drain()
        except OSError:
            pass  # Includes socket.timeout; we are closing anyway

        self.socket.close()
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def _drain(self):
        """
        Read and discard what the client still sends, so close() does not
        answer unread data with RST. Stops at EOF, after DRAIN_TIMEOUT
        seconds in total, or after DRAIN_LIMIT bytes.
        """
        deadline = time.monotonic() + DRAIN_TIMEOUT
        drained = 0
        while drained < DRAIN_LIMIT:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            self.socket.settimeout(remaining)
            data = self.socket.recv(4096)
            if not data:
                break
            drained += len(data)
        if drained:
            logger.debug(f"[{self.id}] Discarded {drained} unread bytes")
