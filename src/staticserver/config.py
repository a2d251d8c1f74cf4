"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized, immutable configuration for the static file server.

=============================================================================
WHY A FROZEN DATACLASS?
=============================================================================

Configuration is read by every connection thread, concurrently, for the
whole lifetime of the process. Making it frozen means:

1. No locking needed - nobody can mutate it after startup
2. Typed - IDE autocomplete and error detection
3. Validated - validate() runs once, before the socket is even created

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION SOURCES                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Command-line arguments (python -m staticserver -d ./www ...)   │
    │   2. Environment variables  (STATIC_DOCUMENT_ROOT=./www ...)        │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
DOCUMENT ROOT LAYOUT
=============================================================================

    <document_root>/
    ├── www.scu.edu/
    │   └── index.html      ← default_document, served for "/"
    ├── errors/             ← error_dir
    │   ├── 400.html
    │   ├── 403.html
    │   └── 404.html
    └── ...                 ← everything else is addressable by URL

=============================================================================
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


SUPPORTED_VERSIONS = ("1.0", "1.1")


class ConfigError(ValueError):
    """Raised when the server configuration is missing or invalid."""


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the static file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    CONTENT
    - document_root, default_document, error_dir

    PROTOCOL
    - http_version, idle_timeout, max_line_size, chunk_size

    NETWORK
    - host, port, backlog, server_timeout

    DIAGNOSTICS
    - debug, log_file, server_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    document_root: str = "."
    """Directory beneath which every servable file must live."""

    default_document: str = "www.scu.edu/index.html"
    """Path (relative to document_root) served for a request to "/"."""

    error_dir: str = "errors"
    """Subdirectory of document_root holding 400.html, 403.html, 404.html."""

    # ─────────────────────────────────────────────────────────────────────
    # PROTOCOL
    # ─────────────────────────────────────────────────────────────────────

    http_version: str = "1.1"
    """
    Protocol version the server speaks ("1.0" or "1.1").
    "1.1" keeps connections alive by default, "1.0" closes after one response.
    """

    idle_timeout: float = 10.0
    """Seconds a connection may sit idle waiting for its next request."""

    max_line_size: int = 8192
    """Longest request or header line accepted, in bytes."""

    chunk_size: int = 4096
    """Size of each block read from disk while streaming a file."""

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    port: int = 8080
    backlog: int = 128

    server_timeout: Optional[float] = 500.0
    """
    Seconds the accept loop waits for a new connection before the whole
    server shuts itself down. None = wait forever.
    """

    # ─────────────────────────────────────────────────────────────────────
    # DIAGNOSTICS
    # ─────────────────────────────────────────────────────────────────────

    debug: bool = False
    """Log every request line and served path at INFO instead of DEBUG."""

    log_file: Optional[str] = "logs/server.log"
    """File sink for the server log. None = console only."""

    server_name: str = "StaticServer/1.0"
    """Value of the Server response header."""

    # =========================================================================
    # DERIVED VALUES
    # =========================================================================

    @property
    def protocol(self) -> str:
        """Status line prefix, e.g. "HTTP/1.1"."""
        return f"HTTP/{self.http_version}"

    @property
    def root_path(self) -> Path:
        """Canonical (symlink-resolved) document root."""
        return Path(self.document_root).resolve()

    @classmethod
    def from_env(cls, **overrides) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        STATIC_DOCUMENT_ROOT   Document root (default: .)
        STATIC_HOST            Bind address (default: 127.0.0.1)
        STATIC_PORT            Port (default: 8080)
        STATIC_HTTP_VERSION    "1.0" or "1.1" (default: 1.1)
        STATIC_DEBUG           "true"/"1"/"yes" enables debug logging
        STATIC_IDLE_TIMEOUT    Per-connection idle timeout in seconds
        STATIC_LOG_FILE        Log file path ("" disables the file sink)

        =====================================================================

        Keyword overrides win over the environment.
        """
        log_file = os.getenv("STATIC_LOG_FILE", "logs/server.log")
        values = dict(
            document_root=os.getenv("STATIC_DOCUMENT_ROOT", "."),
            host=os.getenv("STATIC_HOST", "127.0.0.1"),
            port=int(os.getenv("STATIC_PORT", "8080")),
            http_version=os.getenv("STATIC_HTTP_VERSION", "1.1"),
            debug=os.getenv("STATIC_DEBUG", "false").lower() in ("1", "true", "yes"),
            idle_timeout=float(os.getenv("STATIC_IDLE_TIMEOUT", "10")),
            log_file=log_file or None,
        )
        values.update(overrides)
        return cls(**values)

    def validate(self) -> None:
        """
        Validate configuration values.

        Fail fast: a server with a bad document root or protocol version
        must never start accepting connections.

        Raises:
            ConfigError: With a message suitable for showing to the operator.
        """
        root = Path(self.document_root)
        if not root.exists():
            raise ConfigError(f"Document root not found: {self.document_root}")
        if not root.is_dir():
            raise ConfigError(f"Document root is not a directory: {self.document_root}")

        if self.http_version not in SUPPORTED_VERSIONS:
            raise ConfigError(
                f"Unsupported protocol version: {self.http_version}. "
                f"Supported versions are 1.0 and 1.1."
            )

        if not 0 <= self.port < 65536:
            raise ConfigError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.idle_timeout <= 0:
            raise ConfigError("idle_timeout must be > 0")

        if self.server_timeout is not None and self.server_timeout <= 0:
            raise ConfigError("server_timeout must be > 0 (or None to disable)")

        if self.chunk_size < 1:
            raise ConfigError("chunk_size must be >= 1")

        if self.max_line_size < 256:
            raise ConfigError("max_line_size must be >= 256")


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Frozen dataclass: shared read-only across all connection threads
# 2. Environment variable support via from_env()
# 3. validate() at startup, ConfigError on anything unusable
# =============================================================================
