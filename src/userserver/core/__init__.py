"""
=============================================================================
CORE MODULE - Low-Level Networking Components
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        CORE COMPONENTS                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SocketServer          Connection                                   │
    │   ────────────          ──────────                                   │
    │   Binds the port        Wraps one client socket                      │
    │   Accepts serially      Single recv() of buffer_size bytes           │
    │   Handles signals       sendall() + close                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState

__all__ = [
    "SocketServer",     # TCP listener - accepts connections one at a time
    "Connection",       # Wrapper for a client socket
    "ConnectionState",  # Connection lifecycle states
]
