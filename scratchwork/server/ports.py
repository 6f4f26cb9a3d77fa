"""Port selection with fallback to the next free port."""

from __future__ import annotations

import socket

from ..errors import ScratchError
from ..logging import get_logger

_LOGGER = get_logger("server.ports")


def is_port_available(port: int, host: str = "127.0.0.1") -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError:
            return False
    return True


def find_available_port(preferred: int, max_attempts: int = 10, host: str = "127.0.0.1") -> int:
    """Return ``preferred`` or the first free port after it."""
    for attempt in range(max_attempts):
        port = preferred + attempt
        if is_port_available(port, host):
            return port
        if attempt == 0:
            _LOGGER.info("Port %d is in use, trying %d...", port, port + 1)
        else:
            _LOGGER.debug("Port %d also in use, trying %d...", port, port + 1)
    raise ScratchError(
        f"Could not find an available port (tried {preferred}-{preferred + max_attempts - 1}).\n"
        "Check if other processes are using these ports:\n"
        f"  lsof -i :{preferred}"
    )


__all__ = ["find_available_port", "is_port_available"]
