"""
WifiAtlas Backend — Realtime Channel Tests
============================================

The endpoint coroutine is driven directly with a scripted fake socket, so the
whole exchange runs on the test's event loop and in-memory database.
"""

import json
import uuid
from typing import Any, Dict, List

import pytest
from fastapi import WebSocketDisconnect

from wifiatlas.routes.realtime import WS_POLICY_VIOLATION, organization_events
from wifiatlas.security import create_access_token
from wifiatlas.services.broadcaster import OrganizationBroadcaster


class ScriptedWebSocket:
    """
    Replays `incoming` messages, then disconnects; records what is sent.

    An exception instance in `incoming` is raised instead of returned.
    """

    def __init__(self, incoming: List[Any]):
        self.incoming = list(incoming)
        self.sent: List[Dict[str, Any]] = []
        self.accepted = False
        self.close_code = None

    async def accept(self):
        self.accepted = True

    async def close(self, code: int = 1000, reason: str = ""):
        self.close_code = code

    async def receive_json(self):
        if not self.incoming:
            raise WebSocketDisconnect(code=1000)
        message = self.incoming.pop(0)
        if isinstance(message, Exception):
            raise message
        return message

    async def send_json(self, data):
        self.sent.append(data)

    async def send_text(self, data):
        self.sent.append({"raw": data})


class TestOrganizationEvents:

    @pytest.mark.asyncio
    async def test_invalid_token_closes(self, session_factory):
        websocket = ScriptedWebSocket([])
        await organization_events(websocket, "garbage", OrganizationBroadcaster(), session_factory)

        assert websocket.close_code == WS_POLICY_VIOLATION
        assert websocket.accepted is False

    @pytest.mark.asyncio
    async def test_unknown_user_closes(self, session_factory):
        token = create_access_token(uuid.uuid4(), "ghost@example.com", None)
        websocket = ScriptedWebSocket([])
        await organization_events(websocket, token, OrganizationBroadcaster(), session_factory)

        assert websocket.close_code == WS_POLICY_VIOLATION

    @pytest.mark.asyncio
    async def test_join_own_organization_only(self, db_session, session_factory, make_user):
        alice = await make_user("alice", org_slug="acme")
        await db_session.commit()
        foreign = uuid.uuid4()
        broadcaster = OrganizationBroadcaster()

        websocket = ScriptedWebSocket([
            {"action": "join-organization", "organization_id": str(foreign)},
            {"action": "join-organization", "organization_id": str(alice.organization_id)},
            {"action": "dance", "organization_id": str(alice.organization_id)},
            {"action": "leave-organization", "organization_id": "not-a-uuid"},
            {"action": "leave-organization", "organization_id": str(alice.organization_id)},
        ])
        token = create_access_token(alice.id, alice.email, alice.organization_id)
        await organization_events(websocket, token, broadcaster, session_factory)

        assert websocket.accepted is True
        assert [message["event"] for message in websocket.sent] == [
            "error",
            "joined-organization",
            "error",
            "error",
            "left-organization",
        ]
        assert websocket.sent[0]["data"] == {"message": "Unauthorized"}
        assert websocket.sent[1]["data"] == {"organization_id": str(alice.organization_id)}
        # Disconnect removes the socket from every group
        assert broadcaster.subscriber_count(alice.organization_id) == 0

    @pytest.mark.asyncio
    async def test_subscriber_receives_published_event(self, db_session, session_factory, make_user):
        alice = await make_user("alice", org_slug="acme")
        await db_session.commit()
        broadcaster = OrganizationBroadcaster()
        websocket = ScriptedWebSocket([
            {"action": "join-organization", "organization_id": str(alice.organization_id)},
        ])

        published = []

        async def send_json(data):
            websocket.sent.append(data)
            if data["event"] == "joined-organization":
                published.append(
                    await broadcaster.publish(alice.organization_id, "new-access-point", {"ssid": "X"})
                )

        websocket.send_json = send_json

        token = create_access_token(alice.id, alice.email, alice.organization_id)
        await organization_events(websocket, token, broadcaster, session_factory)

        assert published == [1]
        assert websocket.sent[-1]["raw"] == '{"event": "new-access-point", "data": {"ssid": "X"}}'

    @pytest.mark.asyncio
    async def test_malformed_frame_keeps_socket_open(self, db_session, session_factory, make_user):
        alice = await make_user("alice", org_slug="acme")
        await db_session.commit()
        websocket = ScriptedWebSocket([
            json.JSONDecodeError("Expecting value", "not json", 0),
            {"action": "join-organization", "organization_id": str(alice.organization_id)},
        ])

        token = create_access_token(alice.id, alice.email, alice.organization_id)
        await organization_events(websocket, token, OrganizationBroadcaster(), session_factory)

        assert [message["event"] for message in websocket.sent] == ["error", "joined-organization"]
        assert websocket.sent[0]["data"] == {"message": "Invalid message"}
