"""The printer agent process: wires queue, client, channel and pipeline together."""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import List, Optional, Set

import httpx

from app.agent.api_client import PrintlyClient
from app.agent.config import AgentSettings
from app.agent.conversion import default_engines
from app.agent.local_queue import LocalQueue
from app.agent.notifier import StatusNotifier
from app.agent.pipeline import PrintPipeline, PrintResult
from app.agent.printing import PrinterBackend, select_backend
from app.agent.realtime_client import RealtimeClient
from app.agent.sync import SyncResult, reconcile
from app.jobs.status import JobStatus

logger = logging.getLogger(__name__)


class NotLoggedIn(RuntimeError):
    pass


class PrinterAgent:
    def __init__(
        self,
        settings: AgentSettings,
        queue: Optional[LocalQueue] = None,
        client: Optional[PrintlyClient] = None,
        backend: Optional[PrinterBackend] = None,
        engines: Optional[List] = None,
        connect=None,
    ):
        self.settings = settings
        self.queue = queue or LocalQueue(settings.queue_path)
        self.client = client or PrintlyClient(
            settings.BACKEND_URL,
            token=self.queue.get("token"),
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
        self.notifier = StatusNotifier(self.client)
        self.pipeline = PrintPipeline(
            self.queue,
            self.client,
            self.notifier,
            backend or select_backend(settings.PRINT_BACKEND, settings.SUMATRA_PATH),
            settings.SCRATCH_DIR,
            engines if engines is not None else default_engines(
                settings.SOFFICE_PATH, settings.CONVERSION_TIMEOUT_SECONDS
            ),
            min_printable_bytes=settings.MIN_PRINTABLE_BYTES,
            download_timeout=settings.DOWNLOAD_TIMEOUT_SECONDS,
            conversion_timeout=settings.CONVERSION_TIMEOUT_SECONDS,
            print_timeout=settings.PRINT_TIMEOUT_SECONDS,
        )
        self._connect = connect
        self.realtime: Optional[RealtimeClient] = None
        self._realtime_task: Optional[asyncio.Task] = None
        self._print_queue: Optional[asyncio.Queue] = None
        self._scheduled: Set[str] = set()

    @property
    def shop_id(self) -> Optional[str]:
        return self.queue.get("shop_id")

    def _require_shop(self) -> str:
        shop_id = self.shop_id
        if not shop_id or not self.client.token:
            raise NotLoggedIn("Not logged in; run `login` first")
        return shop_id

    # ---------- session ----------
    async def login(self, email: str, password: str) -> dict:
        data = await self.client.login(email, password)
        shop = data.get("shop")
        if not shop:
            raise NotLoggedIn(f"{email} does not operate a shop")

        self.queue.set("token", data["access_token"])
        self.queue.set("user_id", data["user"]["id"])
        self.queue.set("shop_id", shop["shop_id"])
        self.queue.set("shop_name", shop["shop_name"])
        logger.info(f"Logged in to shop {shop['shop_name']} ({shop['shop_id']})")

        if self._realtime_task is not None:
            await self._restart_realtime()
        return data

    async def logout(self) -> None:
        """Disconnect, forget every local job and setting, empty the scratch dir."""
        await self._stop_realtime()
        await self.notifier.drain()
        self.queue.clear_all()
        self.client.token = None
        self.purge_scratch()
        logger.info("Logged out")

    def purge_scratch(self) -> None:
        scratch = Path(self.settings.SCRATCH_DIR)
        if not scratch.exists():
            return
        for entry in scratch.iterdir():
            if entry.is_dir():
                shutil.rmtree(entry, ignore_errors=True)
            else:
                entry.unlink(missing_ok=True)

    # ---------- jobs ----------
    async def sync(self) -> SyncResult:
        try:
            shop_id = self._require_shop()
        except NotLoggedIn as e:
            return SyncResult(jobs=self.queue.get_pending_jobs(), success=False, error=str(e))
        result = await reconcile(self.client, self.queue, shop_id)
        if self._print_queue is not None:
            for job in result.jobs:
                self._schedule_print(job)
        return result

    async def print_job(self, job_id: str) -> PrintResult:
        job = self.queue.get_job(job_id)
        if job is None:
            return PrintResult(False, "Job not found in local queue")
        return await self.pipeline.print_job(job)

    async def remove_job(self, job_id: str) -> bool:
        """Remove locally no matter what; the server delete is best-effort."""
        removed = self.queue.remove_job(job_id)
        try:
            await self.client.delete_job(job_id)
        except httpx.HTTPError as e:
            logger.warning(f"Server delete of job {job_id} failed: {e}")
        return removed

    async def remove_all_jobs(self) -> None:
        shop_id = self._require_shop()
        try:
            await self.client.delete_shop_jobs(shop_id)
        except httpx.HTTPError as e:
            logger.warning(f"Server delete of shop jobs failed: {e}")
        self.queue.clear_jobs()

    async def history(self, limit: int = 200) -> List[dict]:
        return await self.client.job_history(self._require_shop(), limit)

    def cleanup(self, max_age_hours: Optional[float] = None) -> int:
        if max_age_hours is None:
            max_age_hours = self.settings.CLEANUP_MAX_AGE_HOURS
        return self.queue.cleanup_old_jobs(max_age_hours)

    # ---------- long-running ----------
    def _new_realtime(self) -> RealtimeClient:
        kwargs = {"connect": self._connect} if self._connect else {}
        return RealtimeClient(
            self.settings.ws_url,
            self.shop_id,
            self.settings.PRINTER_ID,
            self.queue,
            on_new_job=self._on_new_job,
            ping_interval=self.settings.PING_INTERVAL_SECONDS,
            base_delay=self.settings.RECONNECT_BASE_DELAY_SECONDS,
            max_delay=self.settings.RECONNECT_MAX_DELAY_SECONDS,
            max_attempts=self.settings.RECONNECT_MAX_ATTEMPTS,
            **kwargs,
        )

    async def _start_realtime(self) -> None:
        self.realtime = self._new_realtime()
        self._realtime_task = asyncio.ensure_future(self.realtime.run())

    async def _stop_realtime(self) -> None:
        if self.realtime is not None:
            await self.realtime.close()
        if self._realtime_task is not None:
            self._realtime_task.cancel()
            try:
                await self._realtime_task
            except asyncio.CancelledError:
                pass
        self.realtime = None
        self._realtime_task = None

    async def _restart_realtime(self) -> None:
        await self._stop_realtime()
        await self._start_realtime()

    async def _on_new_job(self, job: dict) -> None:
        if self._print_queue is not None:
            self._schedule_print(job)

    def _schedule_print(self, job: dict) -> None:
        if job.get("status") != JobStatus.pending.value or job["id"] in self._scheduled:
            return
        self._scheduled.add(job["id"])
        self._print_queue.put_nowait(job["id"])

    async def _print_worker(self) -> None:
        """Single consumer, so jobs print strictly one after another."""
        while True:
            job_id = await self._print_queue.get()
            try:
                job = self.queue.get_job(job_id)
                if job and job.get("status") == JobStatus.pending.value:
                    result = await self.pipeline.print_job(job)
                    if not result.success:
                        logger.warning(f"Auto-print of {job.get('job_number', job_id)} failed: {result.error}")
            finally:
                self._scheduled.discard(job_id)
                self._print_queue.task_done()

    async def _sync_loop(self) -> None:
        while True:
            await self.sync()
            try:
                await self.client.heartbeat(self.settings.PRINTER_ID, "online")
            except httpx.HTTPError as e:
                logger.debug(f"Heartbeat failed: {e}")
            await asyncio.sleep(self.settings.SYNC_INTERVAL_SECONDS)

    async def run(self, auto_print: bool = False) -> None:
        """Serve until cancelled: channel, periodic sync and optionally auto-printing."""
        self._require_shop()
        self.cleanup()

        tasks = []
        if auto_print:
            self._print_queue = asyncio.Queue()
            tasks.append(asyncio.ensure_future(self._print_worker()))
        await self._start_realtime()
        tasks.append(asyncio.ensure_future(self._sync_loop()))

        try:
            await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await self._stop_realtime()
            await self.close()

    async def close(self) -> None:
        await self.notifier.drain()
        await self.pipeline.wait_for_cleanup()
        await self.client.aclose()
