"""
WifiAtlas Backend — Realtime Channel
======================================

What:  WebSocket endpoint /ws?token=<JWT> for organization live events.

Messages (Client -> Server):
    {"action": "join-organization",  "organization_id": "<uuid>"}
    {"action": "leave-organization", "organization_id": "<uuid>"}

Messages (Server -> Client):
    {"event": "new-access-point",    "data": {...access point...}}
    {"event": "speed-test-start",    "data": {"access_point_id", "user_id"}}
    {"event": "speed-test-complete", "data": {"access_point_id", "results"}}
    {"event": "joined-organization" | "left-organization", "data": {"organization_id"}}
    {"event": "error", "data": {"message"}}

Authentication:
    The token is checked before the socket is accepted (close code 4001 on
    failure). A socket may only join the organization its user currently
    belongs to; membership is re-read from the database on each join.
"""

import logging
import uuid
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import async_sessionmaker

from wifiatlas.dependencies import get_broadcaster, get_session_factory
from wifiatlas.exceptions import WifiAtlasError
from wifiatlas.models.user import User
from wifiatlas.security import decode_access_token
from wifiatlas.services.broadcaster import OrganizationBroadcaster
from wifiatlas.services.organization_service import organization_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])

WS_POLICY_VIOLATION = 4001


async def _send_event(websocket: WebSocket, event: str, data: Dict[str, Any]) -> None:
    await websocket.send_json({"event": event, "data": data})


@router.websocket("/ws")
async def organization_events(
    websocket: WebSocket,
    token: str = Query(default="", description="JWT access token"),
    broadcaster: OrganizationBroadcaster = Depends(get_broadcaster),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    try:
        user_id = decode_access_token(token)["sub"]
    except WifiAtlasError:
        await websocket.close(code=WS_POLICY_VIOLATION, reason="Invalid or expired token")
        return

    async with session_factory() as session:
        user = await session.get(User, user_id)
    if user is None:
        await websocket.close(code=WS_POLICY_VIOLATION, reason="User not found")
        return

    await websocket.accept()
    logger.info("WebSocket connected: user=%s", user_id)

    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                await _send_event(websocket, "error", {"message": "Invalid message"})
                continue
            if not isinstance(message, dict):
                await _send_event(websocket, "error", {"message": "Invalid message"})
                continue

            action = message.get("action")
            try:
                organization_id = uuid.UUID(str(message.get("organization_id")))
            except ValueError:
                await _send_event(websocket, "error", {"message": "Invalid organization_id"})
                continue

            if action == "join-organization":
                async with session_factory() as session:
                    scope = await organization_service.resolve_visibility_scope(session, user_id)
                if scope != organization_id:
                    await _send_event(websocket, "error", {"message": "Unauthorized"})
                    continue
                await broadcaster.subscribe(websocket, organization_id)
                await _send_event(
                    websocket, "joined-organization", {"organization_id": str(organization_id)}
                )
            elif action == "leave-organization":
                await broadcaster.unsubscribe(websocket, organization_id)
                await _send_event(
                    websocket, "left-organization", {"organization_id": str(organization_id)}
                )
            else:
                await _send_event(websocket, "error", {"message": "Unknown action"})
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected: user=%s", user_id)
    finally:
        await broadcaster.disconnect(websocket)
