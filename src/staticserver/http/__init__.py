"""
=============================================================================
HTTP PROTOCOL PACKAGE
=============================================================================

Protocol-level pieces, independent of sockets and threads:

    request.py       Line stream → HTTPRequest (or None / HTTPParseError)
    response.py      ResponseWriter: status line, headers, streamed body
    status_codes.py  HTTPStatus enum (200, 400, 403, 404)
    mime_types.py    Extension → Content-Type lookup

Everything here works on plain binary streams, so it can be unit tested
with io.BytesIO instead of a real socket.
=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, decode_path
from .response import ResponseHead, ResponseWriter, format_http_date
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, DEFAULT_MIME_TYPE

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "decode_path",

    # Response writing
    "ResponseHead",
    "ResponseWriter",
    "format_http_date",

    # Status codes
    "HTTPStatus",

    # MIME types
    "get_mime_type",
    "DEFAULT_MIME_TYPE",
]
