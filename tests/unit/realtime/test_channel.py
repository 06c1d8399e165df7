"""Tests for the per-shop connection registry."""

import asyncio
import json

import pytest
from starlette.websockets import WebSocketState

from app.realtime.channel import ConnectionRegistry, is_open
from app.realtime.messages import MessageType, decode, encode, new_job_message, register_message


class TestRegistry:
    def test_register_and_unregister(self, fake_connection):
        registry = ConnectionRegistry()
        a, b = fake_connection(), fake_connection()

        registry.register("shop_a", a)
        registry.register("shop_a", b)
        registry.register("shop_a", a)
        assert registry.count("shop_a") == 2

        registry.unregister("shop_a", a)
        registry.unregister("shop_a", b)
        registry.unregister("shop_a", b)
        assert registry.count("shop_a") == 0

    @pytest.mark.asyncio
    async def test_publish_only_reaches_the_shop(self, fake_connection):
        registry = ConnectionRegistry()
        mine, theirs = fake_connection(), fake_connection()
        registry.register("shop_a", mine)
        registry.register("shop_b", theirs)

        delivered = await registry.publish("shop_a", encode(MessageType.PONG))

        assert delivered == 1
        assert len(mine.sent) == 1
        assert theirs.sent == []

    @pytest.mark.asyncio
    async def test_closed_and_failing_connections_skipped(self, fake_connection):
        registry = ConnectionRegistry()
        healthy, broken, closed = fake_connection(), fake_connection(fail=True), fake_connection()
        closed.client_state = WebSocketState.DISCONNECTED
        for conn in (healthy, broken, closed):
            registry.register("shop_a", conn)

        assert await registry.publish("shop_a", "{}") == 1
        assert healthy.sent == ["{}"]
        assert closed.sent == []
        # Left for their own close handlers to remove.
        assert registry.count("shop_a") == 3

    @pytest.mark.asyncio
    async def test_no_connections(self):
        assert await ConnectionRegistry().publish("shop_x", "{}") == 0

    @pytest.mark.asyncio
    async def test_disconnect_during_publish_does_not_break_iteration(self, fake_connection):
        registry = ConnectionRegistry()
        late = fake_connection()

        class SlowConnection(fake_connection):
            async def send_text(self, text):
                registry.unregister("shop_a", late)
                registry.register("shop_a", fake_connection())
                await asyncio.sleep(0)
                await super().send_text(text)

        slow = SlowConnection()
        registry.register("shop_a", slow)
        registry.register("shop_a", late)

        delivered = await registry.publish("shop_a", "{}")

        assert delivered == 2
        assert slow.sent == ["{}"]

    @pytest.mark.asyncio
    async def test_close_all(self, fake_connection):
        registry = ConnectionRegistry()
        conn = fake_connection()
        registry.register("shop_a", conn)

        await registry.close_all()

        assert conn.closed
        assert registry.count("shop_a") == 0
        assert not is_open(conn)


class TestMessages:
    def test_decode_rejects_untyped_frames(self):
        assert decode("not json") is None
        assert decode("[1, 2]") is None
        assert decode(json.dumps({"job": {}})) is None
        assert decode(json.dumps({"type": "PING"})) == {"type": "PING"}

    def test_register_frame(self):
        frame = json.loads(register_message("shop_a", "HP-01"))
        assert frame["type"] == "REGISTER"
        assert frame["shopId"] == "shop_a"
        assert frame["printerId"] == "HP-01"
        assert frame["timestamp"]

    def test_new_job_frame(self):
        frame = json.loads(new_job_message({"id": "j1", "job_number": "PRT-0001"}))
        assert frame == {"type": "NEW_JOB", "job": {"id": "j1", "job_number": "PRT-0001"}}
