"""Tests for the agent's realtime channel client."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from app.agent.local_queue import LocalQueue
from app.agent.realtime_client import RealtimeClient, backoff_delay


@pytest.fixture
def queue(tmp_path):
    return LocalQueue(str(tmp_path / "jobs-queue.json"))


class FakeSocket:
    """Async-iterable WebSocket that yields scripted frames, then ends."""

    def __init__(self, frames):
        self.frames = list(frames)
        self.sent = []
        self.closed = False

    async def send(self, text):
        self.sent.append(json.loads(text))

    async def close(self):
        self.closed = True

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self.frames:
            raise StopAsyncIteration
        await asyncio.sleep(0)
        return self.frames.pop(0)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


def test_backoff_delay():
    assert [backoff_delay(n, 5, 30) for n in range(1, 9)] == [5, 10, 15, 20, 25, 30, 30, 30]


class TestHandleMessage:
    @pytest.mark.asyncio
    async def test_new_job_queued_once(self, queue, job_snapshot):
        on_new_job = AsyncMock()
        client = RealtimeClient("ws://printly.test/ws", "shop_test01", "HP-01", queue, on_new_job=on_new_job)
        frame = json.dumps({"type": "NEW_JOB", "job": job_snapshot("job-1")})

        assert await client.handle_message(frame) == "NEW_JOB"
        assert await client.handle_message(frame) == "NEW_JOB"

        assert queue.get_job_count() == 1
        on_new_job.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_other_frames(self, queue):
        client = RealtimeClient("ws://printly.test/ws", "shop_test01", "HP-01", queue)
        assert await client.handle_message('{"type": "REGISTERED"}') == "REGISTERED"
        assert await client.handle_message('{"type": "PONG"}') == "PONG"
        assert await client.handle_message('{"type": "SURPRISE"}') == "SURPRISE"
        assert await client.handle_message("{oops") is None
        assert await client.handle_message('{"type": "NEW_JOB", "job": {}}') == "NEW_JOB"
        assert queue.get_job_count() == 0


class TestRun:
    def test_url_carries_shop_and_printer(self, queue):
        client = RealtimeClient("ws://printly.test/ws", "shop_test01", "HP 01", queue)
        assert client.url == "ws://printly.test/ws?shopId=shop_test01&printerId=HP+01"

    @pytest.mark.asyncio
    async def test_registers_and_consumes_frames(self, queue, job_snapshot):
        socket = FakeSocket([
            json.dumps({"type": "REGISTERED"}),
            json.dumps({"type": "NEW_JOB", "job": job_snapshot("job-1")}),
        ])
        connections = []

        def connect(url):
            connections.append(url)
            if len(connections) > 1:
                raise OSError("server gone")
            return socket

        client = RealtimeClient(
            "ws://printly.test/ws", "shop_test01", "HP-01", queue,
            base_delay=0, max_attempts=1, connect=connect,
        )
        status = await client.run()

        assert socket.sent[0]["type"] == "REGISTER"
        assert socket.sent[0]["shopId"] == "shop_test01"
        assert queue.get_job("job-1") is not None
        assert status == "failed"

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, queue):
        attempts = []

        def connect(url):
            attempts.append(url)
            raise OSError("connection refused")

        client = RealtimeClient(
            "ws://printly.test/ws", "shop_test01", "HP-01", queue,
            base_delay=0, max_delay=0, max_attempts=3, connect=connect,
        )

        assert await client.run() == "failed"
        assert client.status == "failed"
        assert len(attempts) == 4

    @pytest.mark.asyncio
    async def test_connections_dropped_before_registered_count_as_failures(self, queue):
        sockets = []

        def connect(url):
            sockets.append(FakeSocket([]))
            return sockets[-1]

        client = RealtimeClient(
            "ws://printly.test/ws", "shop_test01", "HP-01", queue,
            base_delay=0, max_delay=0, max_attempts=3, connect=connect,
        )

        assert await client.run() == "failed"
        assert len(sockets) == 4

    @pytest.mark.asyncio
    async def test_registered_resets_attempts(self, queue):
        client = RealtimeClient("ws://printly.test/ws", "shop_test01", "HP-01", queue)
        client.attempts = 7
        await client.handle_message('{"type": "REGISTERED"}')
        assert client.attempts == 0

    @pytest.mark.asyncio
    async def test_no_shop_no_connection(self, queue):
        connect = AsyncMock()
        client = RealtimeClient("ws://printly.test/ws", None, "HP-01", queue, connect=connect)
        assert await client.run() == "disconnected"
        connect.assert_not_called()
