"""
=============================================================================
CONNECTION HANDLER
=============================================================================

Drives one client connection from accept to close. Runs on its own thread;
nothing here is shared with other handlers except the registry.

=============================================================================
STATE MACHINE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   ┌───────────────┐  EOF / timeout / transport error               │
    │   │ AWAIT_REQUEST │───────────────────────────────────┐             │
    │   └───────┬───────┘                                   │             │
    │           │ request (or parse error → 400)            │             │
    │           ▼                                           │             │
    │   ┌───────────────┐  bad method / disallowed → 400    │             │
    │   │    PARSED     │─────────────────────┐             │             │
    │   └───────┬───────┘                     │             │             │
    │           ▼                             │             │             │
    │   ┌───────────────┐  outside/missing → 404            │             │
    │   │   RESOLVING   │  unreadable → 403   │             │             │
    │   └───────┬───────┘                     │             │             │
    │           ▼                             ▼             ▼             │
    │   ┌───────────────┐  keep-alive   ┌───────────┐  ┌────────┐         │
    │   │  RESPONDING   │──────────────►│ next loop │  │ CLOSED │         │
    │   └───────────────┘               └───────────┘  └────────┘         │
    │           │  Connection: close, or HTTP/1.0          ▲              │
    │           └──────────────────────────────────────────┘              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
KEEP-ALIVE RULES
=============================================================================

    keep_alive starts True only if the server speaks HTTP/1.1.

    "Connection: close" from the client   → keep_alive = False (for good)
    request line says HTTP/1.0            → this exchange is 1.0, close after
    anything else                         → loop for the next request

The status line always carries the server's own version. The Connection
response header tells the client what we are about to do.

=============================================================================
"""

import logging
import os
import socket
from enum import Enum
from typing import Optional

from ..config import ServerConfig
from ..handlers.static import PathResolver, is_allowed_resource
from ..http import HTTPParseError, HTTPRequest, HTTPStatus, RequestParser, ResponseWriter
from .connection import Connection
from .registry import ActiveConnectionSet


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Where a handler is in its request/response cycle."""
    AWAIT_REQUEST = "await_request"  # Blocked reading the next request
    PARSED = "parsed"                # Request line and headers read
    RESOLVING = "resolving"          # Mapping the path to a file
    RESPONDING = "responding"        # Writing the response
    CLOSED = "closed"                # Socket released


class ConnectionHandler:
    """
    Per-connection keep-alive loop.

    Usage:
        handler = ConnectionHandler(conn, config, registry, log)
        handler.run()   # returns once the connection is closed
    """

    def __init__(
        self,
        conn: Connection,
        config: ServerConfig,
        registry: ActiveConnectionSet,
        log: Optional[logging.Logger] = None,
        resolver: Optional[PathResolver] = None,
    ):
        self.conn = conn
        self.config = config
        self.registry = registry
        self._log = log or logger

        self.parser = RequestParser(max_line_size=config.max_line_size)
        self.resolver = resolver or PathResolver(
            config.document_root,
            default_document=config.default_document,
            error_dir=config.error_dir,
            log=self._log,
        )
        self.writer = ResponseWriter(
            conn.wfile,
            protocol=config.protocol,
            server_name=config.server_name,
            chunk_size=config.chunk_size,
            log=self._log,
        )

        self.state = ConnectionState.AWAIT_REQUEST
        self.keep_alive = config.http_version == "1.1"
        self._released = False

    # =========================================================================
    # MAIN LOOP
    # =========================================================================

    def run(self) -> None:
        """
        Serve requests until the connection ends.

        Never raises: every failure is logged and closes this connection
        only. The socket and the registry entry are released on every path.
        """
        ip = self.conn.client_ip
        if self.registry.add(ip):
            self._log.info(f"New connection from {ip}")
        else:
            self._log.debug(f"Additional connection from {ip}")

        try:
            while self._serve_one():
                pass
        except socket.timeout:
            self._log.debug(f"[{self.conn.id}] Idle timeout, closing")
        except OSError as e:
            self._log.warning(f"[{self.conn.id}] Transport error from {ip}: {e}")
        except Exception as e:
            self._log.exception(f"[{self.conn.id}] Unexpected error: {e}")
        finally:
            self._release()

    def _serve_one(self) -> bool:
        """
        Read one request and answer it.

        Returns:
            True if the connection should stay open for another request.
        """
        self.state = ConnectionState.AWAIT_REQUEST

        try:
            request = self.parser.parse(self.conn.rfile, self.conn.address)
        except HTTPParseError as e:
            # Headers were consumed; a "Connection: close" still counts.
            # A fatal error left part of a line unread: close after the 400.
            if e.fatal or e.headers.get("connection", "").lower() == "close":
                self.keep_alive = False
            self._log.info(f"[{self.conn.id}] Bad request from {self.conn.client_ip}: {e}")
            return self._finish(HTTPStatus.BAD_REQUEST, self.config.http_version)

        if request is None:
            self._log.debug(f"[{self.conn.id}] Client closed the connection")
            return False

        # =====================================================================
        # PARSED
        # =====================================================================
        self.state = ConnectionState.PARSED
        self._trace(f"[{self.conn.id}] {request.method} {request.target} {request.version or ''}".rstrip())

        if request.wants_close:
            self.keep_alive = False
        version = self.negotiate_version(request)

        if request.method.upper() != "GET" or not is_allowed_resource(request.path):
            self._log.info(f"[{self.conn.id}] Rejected {request.method} {request.path!r}")
            return self._finish(HTTPStatus.BAD_REQUEST, version)

        # =====================================================================
        # RESOLVING
        # =====================================================================
        self.state = ConnectionState.RESOLVING
        target = self.resolver.resolve(request.path)
        if not target.ok:
            return self._finish(HTTPStatus.NOT_FOUND, version)

        status = check_file(target.path)
        if status is not HTTPStatus.OK:
            return self._finish(status, version)

        # =====================================================================
        # RESPONDING
        # =====================================================================
        self.state = ConnectionState.RESPONDING
        # Open before writing anything, so a failure can still become 403/404.
        try:
            body = open(target.path, "rb")
        except PermissionError:
            return self._finish(HTTPStatus.FORBIDDEN, version)
        except OSError as e:
            self._log.info(f"[{self.conn.id}] Cannot open {target.path}: {e}")
            return self._finish(HTTPStatus.NOT_FOUND, version)

        with body:
            sent = self.writer.send_stream(body, target.path, keep_alive=self._persist(version))

        self._trace(f"[{self.conn.id}] Served {target.path} ({sent} bytes)")
        self.conn.requests_handled += 1
        return self._persist(version)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def negotiate_version(self, request: HTTPRequest) -> str:
        """The server's version, downgraded to 1.0 for an HTTP/1.0 request."""
        if request.version == "HTTP/1.0":
            return "1.0"
        return self.config.http_version

    def _persist(self, version: str) -> bool:
        return self.keep_alive and version == "1.1"

    def _finish(self, status: HTTPStatus, version: str) -> bool:
        """Send an error response and report whether to keep going."""
        self.state = ConnectionState.RESPONDING
        persist = self._persist(version)
        self._log.debug(f"[{self.conn.id}] Responding {status.status_text}")
        self.writer.send_error(status, self.resolver.error_page(status), keep_alive=persist)
        self.conn.requests_handled += 1
        return persist

    def _trace(self, message: str) -> None:
        """Request-level detail: INFO in debug mode, DEBUG otherwise."""
        self._log.log(logging.INFO if self.config.debug else logging.DEBUG, message)

    def _release(self) -> None:
        if self._released:
            return
        self._released = True
        self.state = ConnectionState.CLOSED
        try:
            self.conn.close()
        finally:
            self.registry.remove(self.conn.client_ip)


def check_file(path) -> HTTPStatus:
    """
    Status for serving an in-sandbox path: 200, 403 or 404.

    Only regular files are served; a directory is "not found", and so is
    any name the filesystem refuses to look up (too long, I/O error).
    """
    try:
        if not path.is_file():
            return HTTPStatus.NOT_FOUND
    except PermissionError:
        return HTTPStatus.FORBIDDEN
    except OSError:
        return HTTPStatus.NOT_FOUND
    if not os.access(path, os.R_OK):
        return HTTPStatus.FORBIDDEN
    return HTTPStatus.OK


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. One handler per connection, one thread per handler
# 2. Parse → check method/extension → resolve → 200/400/403/404
# 3. keep_alive off on "Connection: close"; HTTP/1.0 closes after one reply
# 4. Timeout closes silently; transport errors are logged, never answered
# 5. _release() closes the socket and leaves the registry exactly once
# =============================================================================
