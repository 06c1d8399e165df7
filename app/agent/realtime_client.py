"""Agent side of the realtime job channel."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional
from urllib.parse import urlencode

import websockets
from websockets.exceptions import WebSocketException

from app.agent.local_queue import LocalQueue
from app.realtime.messages import MessageType, decode, encode, register_message

logger = logging.getLogger(__name__)

NewJobHandler = Callable[[dict], Awaitable[None]]


def backoff_delay(attempt: int, base: float, cap: float) -> float:
    """Delay before reconnect `attempt` (1-based): base x attempt, never above cap."""
    return min(base * attempt, cap)


class RealtimeClient:
    """
    Keeps one WebSocket open to the server for the operator's shop.

    NEW_JOB frames land in the local queue. On transport loss it reconnects
    after `backoff_delay`; after `max_attempts` consecutive failures the
    status becomes "failed" and `run` returns until someone starts it again.
    A connection the server drops before REGISTERED counts as a failure.
    """

    def __init__(
        self,
        ws_url: str,
        shop_id: str,
        printer_id: str,
        queue: LocalQueue,
        on_new_job: Optional[NewJobHandler] = None,
        ping_interval: float = 30,
        base_delay: float = 5,
        max_delay: float = 30,
        max_attempts: int = 10,
        connect=websockets.connect,
    ):
        self.ws_url = ws_url
        self.shop_id = shop_id
        self.printer_id = printer_id
        self.queue = queue
        self.on_new_job = on_new_job
        self.ping_interval = ping_interval
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.max_attempts = max_attempts
        self._connect = connect

        self.status = "disconnected"
        self.attempts = 0
        self._ws = None
        self._closing = False

    @property
    def url(self) -> str:
        return f"{self.ws_url}?{urlencode({'shopId': self.shop_id, 'printerId': self.printer_id})}"

    async def run(self) -> str:
        """Connect and serve frames until closed or out of reconnect attempts."""
        if not self.shop_id:
            logger.warning("No shop id stored, not connecting to the job channel")
            return self.status

        self._closing = False
        self.attempts = 0
        while not self._closing:
            self.status = "connecting"
            try:
                async with self._connect(self.url) as ws:
                    await self._serve(ws)
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                logger.warning(f"Job channel connection lost: {e}")
            finally:
                self._ws = None

            if self._closing:
                break

            self.status = "disconnected"
            self.attempts += 1
            if self.attempts > self.max_attempts:
                self.status = "failed"
                logger.error("Max reconnection attempts reached, giving up on the job channel")
                return self.status

            delay = backoff_delay(self.attempts, self.base_delay, self.max_delay)
            logger.info(f"Reconnecting in {delay:g}s (attempt {self.attempts}/{self.max_attempts})")
            await asyncio.sleep(delay)

        self.status = "disconnected"
        return self.status

    async def _serve(self, ws) -> None:
        self._ws = ws
        self.status = "connected"
        logger.info(f"Connected to job channel for shop {self.shop_id}")

        await ws.send(register_message(self.shop_id, self.printer_id))
        pinger = asyncio.ensure_future(self._ping(ws))
        try:
            async for raw in ws:
                await self.handle_message(raw)
        finally:
            pinger.cancel()

    async def _ping(self, ws) -> None:
        while True:
            await asyncio.sleep(self.ping_interval)
            try:
                await ws.send(encode(MessageType.PING))
            except WebSocketException as e:
                logger.debug(f"Ping failed: {e}")
                return

    async def handle_message(self, raw) -> Optional[str]:
        """Apply one server frame; returns its type, or None if unreadable."""
        message = decode(raw)
        if message is None:
            logger.warning("Ignoring malformed frame from job channel")
            return None

        kind = message["type"]
        if kind == MessageType.REGISTERED.value:
            self.attempts = 0
            logger.info("Printer registered with the job channel")
        elif kind == MessageType.NEW_JOB.value:
            job = message.get("job")
            if not isinstance(job, dict) or not job.get("id"):
                logger.warning("NEW_JOB frame without a job id")
                return kind
            logger.info(f"New job received: {job.get('job_number')}")
            if self.queue.add_job(job) and self.on_new_job:
                await self.on_new_job(job)
        elif kind == MessageType.PONG.value:
            pass
        else:
            logger.info(f"Unknown message type from job channel: {kind}")
        return kind

    async def close(self) -> None:
        """Say goodbye and stop; `run` returns instead of reconnecting."""
        self._closing = True
        ws = self._ws
        if ws is None:
            return
        try:
            await ws.send(encode(MessageType.DISCONNECT, shopId=self.shop_id, printerId=self.printer_id))
            await ws.close()
        except WebSocketException as e:
            logger.debug(f"Close failed: {e}")
