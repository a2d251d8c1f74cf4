"""
Core networking: sockets, connections and the per-connection loop.

    socket_server.py  Listener: bind/listen/accept, idle auto-shutdown
    connection.py     Connection: one client socket with buffered streams
    handler.py        ConnectionHandler: keep-alive request loop
    registry.py       ActiveConnectionSet: thread-safe client tracking
"""

from .connection import Connection
from .handler import ConnectionHandler, ConnectionState
from .registry import ActiveConnectionSet
from .socket_server import Listener

__all__ = [
    "Connection",
    "ConnectionHandler",
    "ConnectionState",
    "ActiveConnectionSet",
    "Listener",
]
