"""
WifiAtlas Backend — Organization Broadcast Channel
====================================================

What:  Fan-out of live events (new access point, speed test started/completed)
       to WebSocket clients subscribed to an organization.
Why:   Members of an organization see each other's additions without
       refreshing the map.
How:   An abstract Broadcaster is injected into the services that publish;
       OrganizationBroadcaster keeps per-organization connection sets.

Delivery semantics:
    Best-effort, at-most-once. A subscriber that is disconnected when an
    event is published simply misses it; there is no replay log. A socket
    whose send fails is dropped from every group.

Lifecycle:
    One OrganizationBroadcaster is created in the application lifespan and
    stored on app.state; routes obtain it through the get_broadcaster
    dependency.
"""

import asyncio
import json
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class Broadcaster(ABC):
    """Publishes events to every subscriber of an organization channel."""

    @abstractmethod
    async def publish(
        self,
        organization_id: uuid.UUID,
        event: str,
        payload: Dict[str, Any],
    ) -> int:
        """
        Send `{"event": event, "data": payload}` to the organization's channel.

        Returns:
            Number of subscribers the event was delivered to.
        """
        ...


class OrganizationBroadcaster(Broadcaster):
    """
    In-process WebSocket group manager.

    Attributes:
        _groups:  organization_id -> set of subscribed sockets
        _lock:    guards _groups; sends happen outside the lock
    """

    def __init__(self):
        self._groups: Dict[uuid.UUID, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def subscribe(self, websocket: WebSocket, organization_id: uuid.UUID) -> None:
        async with self._lock:
            self._groups.setdefault(organization_id, set()).add(websocket)
            count = len(self._groups[organization_id])
        logger.info("Socket joined org-%s (%d subscribers)", organization_id, count)

    async def unsubscribe(self, websocket: WebSocket, organization_id: uuid.UUID) -> None:
        async with self._lock:
            members = self._groups.get(organization_id)
            if members is None:
                return
            members.discard(websocket)
            if not members:
                del self._groups[organization_id]
        logger.info("Socket left org-%s", organization_id)

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a socket from every group it joined."""
        async with self._lock:
            for organization_id in list(self._groups):
                members = self._groups[organization_id]
                members.discard(websocket)
                if not members:
                    del self._groups[organization_id]

    def subscriber_count(self, organization_id: uuid.UUID) -> int:
        return len(self._groups.get(organization_id, ()))

    async def publish(
        self,
        organization_id: uuid.UUID,
        event: str,
        payload: Dict[str, Any],
    ) -> int:
        async with self._lock:
            sockets = set(self._groups.get(organization_id, ()))

        if not sockets:
            return 0

        message = json.dumps({"event": event, "data": payload}, default=str)
        delivered = 0
        failed: Set[WebSocket] = set()

        for websocket in sockets:
            try:
                await websocket.send_text(message)
                delivered += 1
            except Exception as e:
                logger.warning("Dropping socket after failed send of %s: %s", event, e)
                failed.add(websocket)

        for websocket in failed:
            await self.disconnect(websocket)

        logger.debug("Published %s to org-%s: %d delivered", event, organization_id, delivered)
        return delivered
