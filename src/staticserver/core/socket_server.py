"""
=============================================================================
LISTENER
=============================================================================

Owns the listening socket: bind, listen, accept, and hand each new client
to a callback. It knows nothing about HTTP.

=============================================================================
SOCKET LIFECYCLE
=============================================================================

    socket() ─► setsockopt(SO_REUSEADDR) ─► bind() ─► listen(backlog)
                                                          │
                          ┌───────────────────────────────┘
                          ▼
                 ┌──────────────────┐   timeout (poll)   ┌─────────────────┐
                 │     accept()     │───────────────────►│ idle too long?  │
                 └────────┬─────────┘                    └───┬─────────┬───┘
                          │ (client_socket, address)        no│      yes│
                          ▼                                   │         ▼
                 Connection(...) ─► on_connection(conn)  ◄────┘    stop + close

=============================================================================
AUTO-SHUTDOWN AFTER INACTIVITY
=============================================================================

accept() is polled with a short socket timeout (1 s). Each time it wakes
up empty-handed we compare "now" to the time of the last accepted
connection. Once server_timeout seconds pass with no new client, the loop
ends and the server shuts itself down. server_timeout=None disables this.

The same poll lets shutdown() (from a signal handler or another thread)
take effect within a second.

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop, kill) trigger shutdown().
Python only allows installing handlers from the main thread, so when the
Listener runs on any other thread (tests, embedding) signals are left alone.

=============================================================================
"""

import logging
import signal
import socket
import threading
import time
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class Listener:
    """
    TCP accept loop with idle auto-shutdown.

    Usage:
        listener = Listener(config)
        listener.start(handle)   # blocks; handle(conn) per client
    """

    def __init__(self, config: ServerConfig, log: Optional[logging.Logger] = None):
        self.config = config
        self._log = log or logger

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the socket is listening, so tests can connect.
        self.ready = threading.Event()

        self._original_handlers: dict = {}
        self._last_accept = time.monotonic()
        self.timed_out = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port when configured with port 0."""
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    @property
    def poll_interval(self) -> float:
        if self.config.server_timeout is None:
            return 1.0
        return min(1.0, self.config.server_timeout)

    # =========================================================================
    # SETUP
    # =========================================================================

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restart immediately without "Address already in use" (TIME_WAIT).
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # accept() wakes up regularly to check for shutdown and idleness.
        sock.settimeout(self.poll_interval)
        return sock

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            self._log.debug("Not on the main thread, signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            self._log.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # RUN
    # =========================================================================

    def start(self, on_connection: Callable[[Connection], None]):
        """
        Bind, listen and accept until shutdown or inactivity.

        This method BLOCKS. on_connection must return quickly (hand the
        connection to a thread); the accept loop waits for it.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._socket = self._create_socket()
        try:
            self._socket.bind((self.config.host, self.config.port))
            self._socket.listen(self.config.backlog)
        except OSError as e:
            self._log.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._running = True
        self.timed_out = False
        self._last_accept = time.monotonic()
        self._setup_signals()

        host, port = self.address
        self._log.info(f"Server listening on {host}:{port}")
        self.ready.set()

        try:
            self._accept_loop(on_connection)
        finally:
            self._cleanup()

    def _accept_loop(self, on_connection: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                if self._idle_expired():
                    self._log.info(
                        f"No connections for {self.config.server_timeout}s, shutting down"
                    )
                    self.timed_out = True
                    break
                continue
            except OSError as e:
                # Listening socket closed underneath us: shutting down
                if self._running:
                    self._log.error(f"Accept error: {e}")
                break

            self._last_accept = time.monotonic()
            self._log.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                idle_timeout=self.config.idle_timeout,
            )
            on_connection(conn)

    def _idle_expired(self) -> bool:
        if self.config.server_timeout is None:
            return False
        return time.monotonic() - self._last_accept >= self.config.server_timeout

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def shutdown(self):
        """Stop the accept loop. Safe to call from any thread, more than once."""
        if self._running:
            self._log.info("Shutting down listener...")
        self._running = False

    def _cleanup(self):
        self._running = False
        self._restore_signals()

        if self._socket:
            self._socket.close()
            self._socket = None

        self._log.info("Listener stopped")


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. socket → SO_REUSEADDR → bind → listen → polled accept()
# 2. Each client is wrapped in a Connection and handed to a callback
# 3. No accept for server_timeout seconds ends the loop (auto-shutdown)
# 4. SIGINT/SIGTERM handled only on the main thread, restored afterwards
# =============================================================================
