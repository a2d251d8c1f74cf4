"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can actually send.

    ┌────────────────────────────────────────────────────────────────────┐
    │  CODE   WHEN                                                       │
    ├────────────────────────────────────────────────────────────────────┤
    │  200    File found, readable, streamed back                        │
    │  400    Malformed request line, non-GET method, undecodable path,  │
    │         or an extension outside the allow-list                     │
    │  403    File exists but cannot be read                             │
    │  404    File absent, or the path escapes the document root         │
    └────────────────────────────────────────────────────────────────────┘

A path outside the document root gets 404, the same as a missing file,
whether or not something exists at that location.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    This enum extends IntEnum, so status codes can be used as integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      │
                      │      └── Reason phrase
                      └───────── Status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def status_text(self) -> str:
        """Code and phrase together, e.g. "404 Not Found"."""
        return f"{int(self)} {self.phrase}"

    @property
    def is_error(self) -> bool:
        """Check if this is an error status code (4xx or 5xx)."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
}
