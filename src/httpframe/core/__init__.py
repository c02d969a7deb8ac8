"""
=============================================================================
CORE NETWORKING
=============================================================================

The socket side of the demo server: accepting connections and wrapping
each client socket in buffered reader/writer streams for the framer.

    SocketServer  ──accept()──►  Connection  ──reader/writer──►  framer
=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState

__all__ = [
    "SocketServer",     # Listens and accepts
    "Connection",       # One client socket, closed on every exit path
    "ConnectionState",  # Lifecycle states for logging
]
