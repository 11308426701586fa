"""
Ephemeral port allocation.

The OS picks a free port when binding to port 0. The socket is closed
before the port is handed to a child process, so another process could
grab it in between; the tile server binds right away, which keeps that
window small.
"""

import logging
import socket

LOCALHOST = "127.0.0.1"

logger = logging.getLogger(__name__)


class PortAllocator:
    """Hands out OS-assigned free TCP ports on the loopback interface."""

    def __init__(self, host: str = LOCALHOST):
        self.host = host

    def allocate(self) -> int:
        """Return a port that was free at the time of the call.

        Raises:
            OSError: If the socket cannot be bound
        """
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind((self.host, 0))
            port = sock.getsockname()[1]
        logger.debug(f"Allocated ephemeral port {port}")
        return port
