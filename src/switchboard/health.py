"""Local listener health check.

The check opens a TCP connection to the local service port and closes it
again without sending or reading anything.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_HEALTH_PORT = 1936


class HealthCheck(Protocol):
    async def is_healthy(self) -> bool: ...


class TcpHealthCheck:
    """Checks that a TCP listener accepts connections."""

    def __init__(self, host: str, port: int = DEFAULT_HEALTH_PORT, timeout: float = 2.0):
        self.host = host
        self.port = port
        self.timeout = timeout

    async def is_healthy(self) -> bool:
        """Return True if a connection to host:port is accepted within the timeout."""
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.info(f"Listener {self.host}:{self.port} timed out after {self.timeout}s")
            return False
        except OSError as e:
            logger.info(f"Listener {self.host}:{self.port} unreachable: {e}")
            return False

        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            # Peer reset on close; the connection was still accepted.
            pass
        return True
