"""
=============================================================================
STATICSERVER - Static File HTTP Server on Raw Sockets
=============================================================================

Serves files from a document root over HTTP/1.0 and HTTP/1.1 with
keep-alive, one thread per connection, and a sandbox that keeps every
request inside the root.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    staticserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m staticserver)
    ├── server.py            # StaticServer: wiring + thread per connection
    ├── config.py            # ServerConfig frozen dataclass
    ├── logs.py              # setup_logging(): console + file sink
    ├── core/
    │   ├── socket_server.py # Listener: accept loop, idle auto-shutdown
    │   ├── connection.py    # Connection: one client socket
    │   ├── handler.py       # ConnectionHandler: keep-alive state machine
    │   └── registry.py      # ActiveConnectionSet
    ├── http/
    │   ├── request.py       # RequestParser
    │   ├── response.py      # ResponseWriter
    │   ├── status_codes.py  # HTTPStatus
    │   └── mime_types.py    # get_mime_type()
    └── handlers/
        └── static.py        # PathResolver, is_allowed_resource()

=============================================================================
QUICK START
=============================================================================

    from staticserver import StaticServer, ServerConfig

    server = StaticServer(ServerConfig(document_root="./www", port=8080))
    server.run()

or from the shell:

    python -m staticserver -document_root ./www -port 8080

=============================================================================
"""

__version__ = "1.0.0"

from .config import ConfigError, ServerConfig
from .server import StaticServer

__all__ = ["StaticServer", "ServerConfig", "ConfigError", "__version__"]
