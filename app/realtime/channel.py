"""Per-shop registry of live printer-agent connections."""

from __future__ import annotations

import logging
from typing import Any, Dict, Set

from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)


def is_open(connection: Any) -> bool:
    return (
        getattr(connection, "client_state", None) == WebSocketState.CONNECTED
        and getattr(connection, "application_state", None) == WebSocketState.CONNECTED
    )


class ConnectionRegistry:
    """
    Shop id -> set of open WebSocket connections.

    One instance per server process, created in the app lifespan. Publishing
    iterates over a snapshot of the set, so connects and disconnects that
    land while a broadcast is awaiting a send never mutate what is being
    iterated.
    """

    def __init__(self) -> None:
        self._connections: Dict[str, Set[Any]] = {}

    def register(self, shop_id: str, connection: Any) -> None:
        self._connections.setdefault(shop_id, set()).add(connection)
        logger.info(f"Printer connected to shop {shop_id} ({self.count(shop_id)} connection(s))")

    def unregister(self, shop_id: str, connection: Any) -> None:
        connections = self._connections.get(shop_id)
        if not connections:
            return
        connections.discard(connection)
        if not connections:
            del self._connections[shop_id]
        logger.info(f"Printer disconnected from shop {shop_id}")

    def count(self, shop_id: str) -> int:
        return len(self._connections.get(shop_id, ()))

    async def publish(self, shop_id: str, message: str) -> int:
        """
        Send one frame to every open connection of the shop.

        Closed connections are skipped, not removed; their own close handler
        unregisters them. Returns how many connections received the frame.
        """
        snapshot = list(self._connections.get(shop_id, ()))
        if not snapshot:
            logger.warning(f"No printers connected for shop {shop_id}")
            return 0

        delivered = 0
        for connection in snapshot:
            if not is_open(connection):
                continue
            try:
                await connection.send_text(message)
            except Exception as e:
                logger.warning(f"Dropping frame for a connection of shop {shop_id}: {e}")
                continue
            delivered += 1
        return delivered

    async def close_all(self) -> None:
        for shop_id, connections in list(self._connections.items()):
            for connection in list(connections):
                if is_open(connection):
                    try:
                        await connection.close()
                    except Exception as e:
                        logger.debug(f"Close failed for shop {shop_id}: {e}")
        self._connections.clear()
