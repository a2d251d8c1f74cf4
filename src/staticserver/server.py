"""
=============================================================================
STATIC SERVER
=============================================================================

Ties the pieces together: one Listener, one shared registry, and one
thread per accepted connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                       ┌────────────────┐                            │
    │                       │  StaticServer  │                            │
    │                       └───────┬────────┘                            │
    │                               │                                      │
    │          ┌────────────────────┼────────────────────┐                │
    │          ▼                    ▼                    ▼                │
    │   ┌─────────────┐   ┌───────────────────┐   ┌──────────────┐       │
    │   │  Listener   │   │ActiveConnectionSet│   │ PathResolver │       │
    │   │ (accept)    │   │ (shared, locked)  │   │ (shared, ro) │       │
    │   └──────┬──────┘   └───────────────────┘   └──────────────┘       │
    │          │ conn                                                      │
    │          ▼                                                           │
    │   Thread "Handler-N" ──► ConnectionHandler(conn).run()              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY A THREAD PER CONNECTION
=============================================================================

Every handler spends nearly all its time blocked on the socket (waiting
for the next keep-alive request, or for the client to drain a large
file). Blocking I/O releases the GIL, so plain threads are enough. There
is no cap on the number of threads; each one ends after at most
idle_timeout seconds of silence.

=============================================================================
"""

import itertools
import logging
import threading
from typing import List, Optional

from .config import ServerConfig
from .core import ActiveConnectionSet, Connection, ConnectionHandler, Listener
from .handlers import PathResolver


logger = logging.getLogger(__name__)


class StaticServer:
    """
    Static file HTTP server.

    Usage:
        config = ServerConfig(document_root="./www", port=8080)
        server = StaticServer(config)
        server.run()   # blocks until Ctrl+C or server_timeout of silence
    """

    def __init__(self, config: Optional[ServerConfig] = None, log: Optional[logging.Logger] = None):
        self.config = config or ServerConfig()
        self.config.validate()
        self._log = log or logger

        self.registry = ActiveConnectionSet()
        self.resolver = PathResolver(
            self.config.document_root,
            default_document=self.config.default_document,
            error_dir=self.config.error_dir,
            log=self._log,
        )
        self.listener = Listener(self.config, log=self._log)

        self._workers: List[threading.Thread] = []
        self._workers_lock = threading.Lock()
        self._counter = itertools.count(1)

    @property
    def address(self):
        return self.listener.address

    @property
    def ready(self) -> threading.Event:
        return self.listener.ready

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self) -> None:
        """Serve until shutdown() or until no client connects for server_timeout."""
        self._log.info(
            f"Serving {self.resolver.root} over {self.config.protocol} "
            f"(client timeout {self.config.idle_timeout}s, "
            f"server timeout {self.config.server_timeout}s)"
        )
        try:
            self.listener.start(self._handle_connection)
        except KeyboardInterrupt:
            self._log.info("Received keyboard interrupt")
        finally:
            self._join_workers()
            self._log.info("Server stopped")

    def shutdown(self) -> None:
        """Stop accepting connections; run() returns once handlers finish."""
        self.listener.shutdown()

    # =========================================================================
    # CONNECTIONS
    # =========================================================================

    def _handle_connection(self, conn: Connection) -> None:
        """Called by the Listener for each client: start its handler thread."""
        handler = ConnectionHandler(
            conn,
            self.config,
            self.registry,
            log=self._log,
            resolver=self.resolver,
        )
        worker = threading.Thread(
            target=handler.run,
            name=f"Handler-{next(self._counter)}",
            daemon=True,
        )
        with self._workers_lock:
            self._workers = [t for t in self._workers if t.is_alive()]
            self._workers.append(worker)
        worker.start()

    def _join_workers(self) -> None:
        with self._workers_lock:
            workers = list(self._workers)
            self._workers.clear()

        live = [t for t in workers if t.is_alive()]
        if live:
            self._log.info(f"Waiting for {len(live)} connection(s) to finish")
        for worker in live:
            worker.join(timeout=self.config.idle_timeout + 1)
            if worker.is_alive():
                self._log.warning(f"{worker.name} still running after shutdown")
