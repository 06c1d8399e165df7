"""Tests for best-effort status notifications."""

import asyncio

import httpx
import pytest

from app.agent.notifier import StatusNotifier


class SlowClient:
    """Answers the first request slowly so ordering problems would show."""

    def __init__(self):
        self.sent = []
        self.calls = 0

    async def update_job_status(self, job_id, status):
        self.calls += 1
        if self.calls == 1:
            await asyncio.sleep(0.05)
        self.sent.append((job_id, status))


class BrokenClient:
    async def update_job_status(self, job_id, status):
        raise httpx.ConnectError("offline")


@pytest.mark.asyncio
async def test_updates_for_one_job_stay_in_order():
    client = SlowClient()
    notifier = StatusNotifier(client)

    notifier.notify("job-1", "printing")
    notifier.notify("job-1", "completed")
    await notifier.drain()

    assert client.sent == [("job-1", "printing"), ("job-1", "completed")]


@pytest.mark.asyncio
async def test_failures_are_swallowed():
    notifier = StatusNotifier(BrokenClient())

    task = notifier.notify("job-1", "printing")
    await notifier.drain()

    assert task.result() is False


@pytest.mark.asyncio
async def test_notify_does_not_block():
    client = SlowClient()
    notifier = StatusNotifier(client)

    notifier.notify("job-1", "printing")
    assert client.sent == []

    await notifier.drain()
    assert client.sent == [("job-1", "printing")]
