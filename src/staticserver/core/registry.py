"""
=============================================================================
ACTIVE CONNECTION REGISTRY
=============================================================================

The one piece of mutable state shared between handler threads: which
clients (by IP address) currently have at least one open connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Handler-1 ──add("10.0.0.5")──►  ┌──────────────────────┐          │
    │   Handler-2 ──add("10.0.0.5")──►  │  Lock                │          │
    │   Handler-3 ──add("10.0.0.9")──►  │  Counter             │          │
    │   Handler-1 ──remove("10.0.0.5")► │   10.0.0.5 → 1       │          │
    │                                   │   10.0.0.9 → 1       │          │
    │                                   └──────────────────────┘          │
    └─────────────────────────────────────────────────────────────────────┘

A browser opens several connections from the same IP. Counting them means
closing one does not make the client look disconnected while the others
are still open.
=============================================================================
"""

import threading
from collections import Counter


class ActiveConnectionSet:
    """
    Thread-safe multiset of connected client identifiers.

    Callers need no locking of their own.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counts: Counter = Counter()

    def add(self, client_id: str) -> bool:
        """
        Register a connection for client_id.

        Returns:
            True if this is the client's first open connection.
        """
        with self._lock:
            self._counts[client_id] += 1
            return self._counts[client_id] == 1

    def remove(self, client_id: str) -> None:
        """Unregister one connection. Unknown identifiers are ignored."""
        with self._lock:
            if self._counts[client_id] <= 1:
                self._counts.pop(client_id, None)
            else:
                self._counts[client_id] -= 1

    def contains(self, client_id: str) -> bool:
        with self._lock:
            return self._counts[client_id] > 0
