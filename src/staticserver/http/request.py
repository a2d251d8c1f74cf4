"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the bytes arriving on a connection into HTTPRequest objects, one
request per call.

=============================================================================
LINE-ORIENTED PARSING
=============================================================================

A static file server never reads request bodies, so a request is nothing
more than a handful of lines:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     WHAT WE READ                                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   \r\n                          ← blank padding: skipped            │
    │   GET /docs/guide%20v2 HTTP/1.1\r\n   ← request line                │
    │   Host: localhost:8080\r\n      ← header                            │
    │   garbage-without-colon\r\n     ← malformed header: skipped         │
    │   Connection: close\r\n         ← header                            │
    │   \r\n                          ← end of headers                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The parser reads from a buffered binary stream (socket.makefile("rb")),
so whatever the client pipelined after this request stays in the buffer
for the next call.

=============================================================================
THREE POSSIBLE OUTCOMES
=============================================================================

    parse(stream) ──┬──► HTTPRequest       a request to answer
                    ├──► None              end of stream: close quietly
                    └──► HTTPParseError    malformed: answer 400

Headers are consumed even when the request line is malformed. Otherwise
the header lines of a bad request would be mistaken for the next request,
and a "Connection: close" sent with it would be lost.

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import BinaryIO, Dict, Optional
from urllib.parse import unquote


class HTTPParseError(Exception):
    """
    Raised when a request cannot be understood.

    Carries the status code to return (always 400 here) and whatever
    headers were read, so the caller can still honour "Connection: close".

    fatal is set when the stream position is no longer trustworthy (an
    over-long line was cut short); the connection must close after the
    error response.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        headers: Optional[Dict[str, str]] = None,
        fatal: bool = False,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.headers = headers or {}
        self.fatal = fatal


@dataclass
class HTTPRequest:
    """
    Represents a parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         Request method exactly as sent ("GET", "get", ...)

        target:         Raw request-target token, still percent-encoded
                        "/docs/guide%20v2?x=1"

        path:           Percent-decoded target. May still carry the query
                        string or fragment; PathResolver strips those.
                        "/docs/guide v2?x=1"

        version:        Version token from the request line, or None when
                        the client sent only "METHOD PATH"

        headers:        Lowercase header name → stripped value.
                        When a header repeats, the LAST value wins.

        client_address: (ip, port) of the peer
    =========================================================================
    """

    method: str
    path: str
    target: str = ""
    version: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    client_address: tuple[str, int] = ("", 0)

    @property
    def wants_close(self) -> bool:
        """True when the client sent "Connection: close" (any case)."""
        return self.headers.get("connection", "").lower() == "close"


# A "%" not followed by two hex digits; unquote() would silently keep it.
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def decode_path(raw: str) -> str:
    """
    Percent-decode a request target as UTF-8.

    Raises:
        HTTPParseError: On a broken escape ("%zz", trailing "%4") or on
                        escapes that do not form valid UTF-8 ("%ff").
    """
    if _BAD_ESCAPE.search(raw):
        raise HTTPParseError(f"Malformed percent-escape in path: {raw!r}")
    try:
        return unquote(raw, encoding="utf-8", errors="strict")
    except UnicodeDecodeError as e:
        raise HTTPParseError(f"Path is not valid UTF-8: {raw!r}") from e


class RequestParser:
    """
    Reads one HTTPRequest at a time from a binary line stream.

    ==========================================================================
    PARSER STEPS
    ==========================================================================

        1. Skip blank lines; EOF here → return None
        2. Read headers until blank line or EOF
           "Name: value" split on the FIRST colon, lines without one skipped
        3. Split request line on single spaces; < 2 tokens → HTTPParseError
        4. Percent-decode the target; failure → HTTPParseError

        Any line longer than max_line_size → HTTPParseError with fatal=True

    ==========================================================================
    """

    def __init__(self, max_line_size: int = 8192):
        self.max_line_size = max_line_size

    def parse(
        self,
        stream: BinaryIO,
        client_address: tuple[str, int] = ("", 0),
    ) -> Optional[HTTPRequest]:
        """
        Parse the next request from the stream.

        Blocks on the stream; a socket timeout propagates to the caller.

        Returns:
            The parsed request, or None if the stream ended before a
            request line arrived.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        # =====================================================================
        # STEP 1: Request line (skipping keep-alive padding)
        # =====================================================================
        while True:
            raw_line = self._readline(stream)
            if not raw_line:
                return None
            if raw_line.strip():
                break

        # =====================================================================
        # STEP 2: Headers, read before validating so the stream stays in sync
        # =====================================================================
        headers = self._parse_headers(stream)

        try:
            request_line = raw_line.decode("utf-8").rstrip("\r\n")
        except UnicodeDecodeError:
            raise HTTPParseError("Request line is not valid UTF-8", headers=headers)

        # =====================================================================
        # STEP 3: Split the request line
        # =====================================================================
        tokens = request_line.split(" ")
        while tokens and tokens[-1] == "":
            tokens.pop()

        if len(tokens) < 2:
            raise HTTPParseError(f"Invalid request line: {request_line!r}", headers=headers)

        method, target = tokens[0], tokens[1]
        version = tokens[2] if len(tokens) > 2 else None

        # =====================================================================
        # STEP 4: Percent-decode the target
        # =====================================================================
        try:
            path = decode_path(target)
        except HTTPParseError as e:
            e.headers = headers
            raise

        return HTTPRequest(
            method=method,
            path=path,
            target=target,
            version=version,
            headers=headers,
            client_address=client_address,
        )

    def _readline(self, stream: BinaryIO) -> bytes:
        """Read one line, refusing lines longer than max_line_size."""
        line = stream.readline(self.max_line_size + 1)
        if len(line) > self.max_line_size:
            # The rest of the line is still unread in the stream.
            raise HTTPParseError(f"Line exceeds {self.max_line_size} bytes", fatal=True)
        return line

    def _parse_headers(self, stream: BinaryIO) -> Dict[str, str]:
        """
        Read header lines up to the blank line (or EOF).

        Header lines are decoded as ISO-8859-1, which maps every byte to a
        character and so can never fail.
        """
        headers: Dict[str, str] = {}

        while True:
            raw = self._readline(stream)
            line = raw.decode("iso-8859-1").strip()
            if not line:
                return headers

            name, sep, value = line.partition(":")
            if not sep:
                continue  # Skip malformed headers (lenient parsing)

            # Last occurrence wins.
            headers[name.strip().lower()] = value.strip()


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Line-based: one buffered stream per connection, pipelining for free
# 2. Three outcomes: request, None (EOF), HTTPParseError (400)
# 3. Headers always consumed, even for a bad request line
# 4. An over-long line is fatal: its tail is still in the stream
# 5. Strict percent-decoding: "%zz" and invalid UTF-8 are errors
# =============================================================================
