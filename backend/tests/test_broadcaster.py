"""
WifiAtlas Backend — Broadcast Channel Tests
=============================================
"""

import json
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from wifiatlas.services.broadcaster import OrganizationBroadcaster


def _socket(fail: bool = False) -> MagicMock:
    websocket = MagicMock()
    websocket.send_text = AsyncMock(side_effect=RuntimeError("closed") if fail else None)
    return websocket


class TestOrganizationBroadcaster:

    @pytest.mark.asyncio
    async def test_publish_reaches_only_the_organization(self):
        broadcaster = OrganizationBroadcaster()
        acme, other = uuid.uuid4(), uuid.uuid4()
        member, outsider = _socket(), _socket()
        await broadcaster.subscribe(member, acme)
        await broadcaster.subscribe(outsider, other)

        delivered = await broadcaster.publish(acme, "new-access-point", {"ssid": "CafeNet"})

        assert delivered == 1
        outsider.send_text.assert_not_awaited()
        message = json.loads(member.send_text.await_args.args[0])
        assert message == {"event": "new-access-point", "data": {"ssid": "CafeNet"}}

    @pytest.mark.asyncio
    async def test_publish_to_empty_group(self):
        broadcaster = OrganizationBroadcaster()
        assert await broadcaster.publish(uuid.uuid4(), "speed-test-start", {}) == 0

    @pytest.mark.asyncio
    async def test_failed_socket_is_dropped(self):
        broadcaster = OrganizationBroadcaster()
        acme = uuid.uuid4()
        healthy, broken = _socket(), _socket(fail=True)
        await broadcaster.subscribe(healthy, acme)
        await broadcaster.subscribe(broken, acme)

        delivered = await broadcaster.publish(acme, "speed-test-complete", {})

        assert delivered == 1
        assert broadcaster.subscriber_count(acme) == 1

    @pytest.mark.asyncio
    async def test_unsubscribe_and_disconnect(self):
        broadcaster = OrganizationBroadcaster()
        acme, other = uuid.uuid4(), uuid.uuid4()
        websocket = _socket()
        await broadcaster.subscribe(websocket, acme)
        await broadcaster.subscribe(websocket, other)

        await broadcaster.unsubscribe(websocket, acme)
        assert broadcaster.subscriber_count(acme) == 0
        assert broadcaster.subscriber_count(other) == 1

        await broadcaster.disconnect(websocket)
        assert broadcaster.subscriber_count(other) == 0

    @pytest.mark.asyncio
    async def test_unsubscribe_unknown_group_is_noop(self):
        broadcaster = OrganizationBroadcaster()
        await broadcaster.unsubscribe(_socket(), uuid.uuid4())
