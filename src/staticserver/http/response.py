"""
=============================================================================
HTTP RESPONSE WRITER
=============================================================================

Serializes responses straight onto the connection's output stream.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTP/1.1 200 OK\r\n                    ← status line              │
    │   Server: StaticServer/1.0\r\n                                      │
    │   Date: Thu, 15 Jan 2026 12:30:45 GMT\r\n                           │
    │   Content-Type: text/html\r\n                                       │
    │   Content-Length: 5120\r\n               ← file size on disk        │
    │   Connection: keep-alive\r\n                                        │
    │   \r\n                                   ← end of headers           │
    │   <5120 bytes of file, in 4 KB chunks>   ← body                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
STREAMING, NOT BUFFERING
=============================================================================

A 2 GB video must not become a 2 GB bytes object. We send the head, then
copy the file to the socket chunk_size bytes at a time. Content-Length
comes from stat(), so the client still knows where the body ends, which
keep-alive needs.

The file is opened BEFORE anything is written. If open() fails the caller
can still answer 403/404; once the status line is on the wire it is too
late to change our mind.

=============================================================================
ERROR BODIES
=============================================================================

    send_error(404, page)
        │
        ├── page readable? ──► serve page with status 404
        │
        └── otherwise ────────► text/plain body "404 Not Found"

The client never sees an OS error message; those only go to the log.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Dict, Optional

from .status_codes import HTTPStatus
from .mime_types import get_mime_type


logger = logging.getLogger(__name__)


@dataclass
class ResponseHead:
    """
    Status line plus headers of a response (everything before the body).

    Header order is preserved as inserted.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        return f"{self.version} {self.status.status_text}"

    def to_bytes(self) -> bytes:
        """
        Serialize the head, including the blank line that ends it.

        Every line ends with CRLF and the block ends with an extra CRLF:

            HTTP/1.1 200 OK\r\n
            Content-Length: 5\r\n
            \r\n
        """
        lines = [self.status_line]
        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")
        return ("\r\n".join(lines) + "\r\n").encode("iso-8859-1")


class ResponseWriter:
    """
    Writes responses for one connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ResponseWriter API                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   send_file(path)            200 + streamed file                    │
    │   send_stream(f, path)       same, for a file the caller opened     │
    │   send_error(status, page)   error page, or inline text fallback    │
    │   send_text(status, text)    small inline text/plain body           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        writer = ResponseWriter(conn.wfile, protocol="HTTP/1.1")
        writer.send_file(Path("/srv/www/index.html"), keep_alive=True)
    """

    def __init__(
        self,
        stream: BinaryIO,
        protocol: str = "HTTP/1.1",
        server_name: str = "StaticServer/1.0",
        chunk_size: int = 4096,
        log: Optional[logging.Logger] = None,
    ):
        self.stream = stream
        self.protocol = protocol
        self.server_name = server_name
        self.chunk_size = chunk_size
        self._log = log or logger

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def send_file(
        self,
        path: Path,
        status: HTTPStatus = HTTPStatus.OK,
        keep_alive: bool = True,
    ) -> int:
        """
        Send a file as the response body.

        Args:
            path: File to stream.
            status: Status to send with it (error pages reuse this).
            keep_alive: Value of the Connection header.

        Returns:
            Number of body bytes written.

        Raises:
            OSError: If the file cannot be opened (nothing has been written
                     yet), or if the socket fails mid-transfer.
        """
        with open(path, "rb") as f:
            return self.send_stream(f, path, status=status, keep_alive=keep_alive)

    def send_stream(
        self,
        f: BinaryIO,
        path: Path,
        status: HTTPStatus = HTTPStatus.OK,
        keep_alive: bool = True,
    ) -> int:
        """
        Send an already opened file. path only picks the Content-Type.

        Any OSError raised here comes from the socket or a read, never
        from opening the file.
        """
        size = os.fstat(f.fileno()).st_size
        head = self._head(status, get_mime_type(path), size, keep_alive)
        self.stream.write(head.to_bytes())

        sent = 0
        while True:
            chunk = f.read(self.chunk_size)
            if not chunk:
                break
            self.stream.write(chunk)
            sent += len(chunk)

        self.stream.flush()
        return sent

    def send_error(
        self,
        status: HTTPStatus,
        page: Optional[Path] = None,
        keep_alive: bool = True,
    ) -> None:
        """
        Send an error response.

        Tries the on-disk error page first. If it is missing or unreadable
        the body falls back to the bare status text ("404 Not Found").
        """
        if page is not None:
            try:
                f = open(page, "rb")
            except OSError as e:
                self._log.info(f"Error page {page} unavailable ({e}), using inline body")
            else:
                with f:
                    self.send_stream(f, page, status=status, keep_alive=keep_alive)
                return

        self.send_text(status, status.status_text, keep_alive=keep_alive)

    def send_text(
        self,
        status: HTTPStatus,
        text: str,
        keep_alive: bool = True,
    ) -> None:
        """Send a small text/plain response held in memory."""
        body = text.encode("utf-8")
        head = self._head(status, "text/plain", len(body), keep_alive)
        self.stream.write(head.to_bytes() + body)
        self.stream.flush()

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _head(
        self,
        status: HTTPStatus,
        content_type: str,
        content_length: int,
        keep_alive: bool,
    ) -> ResponseHead:
        return ResponseHead(
            status=status,
            version=self.protocol,
            headers={
                "Server": self.server_name,
                "Date": format_http_date(datetime.now(timezone.utc)),
                "Content-Type": content_type,
                "Content-Length": str(content_length),
                "Connection": "keep-alive" if keep_alive else "close",
            },
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 1123 / RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Thu, 15 Jan 2026 12:30:45 GMT

    HTTP dates are ALWAYS in GMT, never local time. Names are hard-coded
    rather than taken from strftime("%a"), which follows the locale.
    """
    dt = dt.astimezone(timezone.utc)

    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. ResponseHead: status line + headers → CRLF-framed bytes
# 2. send_file opens first; send_stream writes head, then bounded chunks
# 3. send_error: error page if it opens, else inline "<code> <phrase>"
# 4. format_http_date: locale-independent RFC 1123 dates
# =============================================================================
