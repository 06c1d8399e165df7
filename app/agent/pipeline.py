"""Print execution pipeline: download, convert, subset, dispatch, finalize."""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set

import httpx

from app.agent.api_client import PrintlyClient
from app.agent.conversion import convert_to_pdf
from app.agent.errors import ConversionError, PrintJobError, TransientIOError
from app.agent.local_queue import LocalQueue
from app.agent.notifier import StatusNotifier
from app.agent.printing import PrinterBackend, build_print_options, ensure_printable
from app.agent.subset import extract_pages
from app.jobs.page_ranges import selects_all
from app.jobs.status import InvalidTransition, JobStatus

logger = logging.getLogger(__name__)


@dataclass
class PrintResult:
    success: bool
    error: Optional[str] = None


def cleanup_files(paths: Iterable[Optional[Path]]) -> int:
    """Delete scratch files once each; missing files are fine."""
    removed = 0
    for path in dict.fromkeys(p for p in paths if p):
        try:
            path.unlink()
            removed += 1
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug(f"Could not remove scratch file {path}: {e}")
    return removed


class PrintPipeline:
    """
    Runs one job at a time per job id.

    Local state changes happen synchronously in the queue; the matching
    server updates go through the notifier and are never awaited here.
    """

    def __init__(
        self,
        queue: LocalQueue,
        client: PrintlyClient,
        notifier: StatusNotifier,
        backend: PrinterBackend,
        scratch_dir: str,
        engines: Sequence,
        min_printable_bytes: int = 1000,
        download_timeout: float = 120,
        conversion_timeout: float = 60,
        print_timeout: float = 60,
    ):
        self.queue = queue
        self.client = client
        self.notifier = notifier
        self.backend = backend
        self.scratch_dir = Path(scratch_dir)
        self.engines = engines
        self.min_printable_bytes = min_printable_bytes
        self.download_timeout = download_timeout
        self.conversion_timeout = conversion_timeout
        self.print_timeout = print_timeout
        self._in_flight: Set[str] = set()
        self._cleanups: Set[asyncio.Future] = set()

    async def print_job(self, job: dict) -> PrintResult:
        job_id = job["id"]
        if job_id in self._in_flight:
            return PrintResult(False, "Job is already printing")

        self._in_flight.add(job_id)
        try:
            return await self._run(job)
        finally:
            self._in_flight.discard(job_id)

    async def _run(self, job: dict) -> PrintResult:
        job_id = job["id"]
        label = job.get("job_number", job_id)
        started = time.monotonic()

        self.queue.add_job(job)
        try:
            self.queue.update_job_status(job_id, JobStatus.printing)
        except InvalidTransition as e:
            logger.warning(f"Not printing {label}: {e}")
            return PrintResult(False, str(e))
        self.notifier.notify(job_id, JobStatus.printing.value)
        logger.info(f"Starting print job {label}")

        scratch: List[Path] = []
        try:
            source = self.scratch_dir / f"{job_id}-{Path(job.get('file_name') or job['file_key']).name}"
            scratch.append(source)
            await self._acquire(job, source)

            converted = self.scratch_dir / f"{job_id}-converted.pdf"
            scratch.append(converted)
            pdf = await self._normalize(source, converted, job)

            subset = self.scratch_dir / f"{job_id}-pages.pdf"
            scratch.append(subset)
            final = await self._subset(pdf, subset, job)

            ensure_printable(final, self.min_printable_bytes)
            await self.backend.dispatch(final, build_print_options(job), self.print_timeout)
        except asyncio.CancelledError:
            logger.warning(f"Print of {label} was interrupted")
            self._fail(job_id)
            raise
        except Exception as e:
            if isinstance(e, PrintJobError):
                logger.error(f"Print failed for {label}: {e}")
            else:
                logger.exception(f"Print failed for {label}")
            self._fail(job_id)
            return PrintResult(False, str(e) or type(e).__name__)
        finally:
            self._schedule_cleanup(scratch)

        self.queue.update_job_status(job_id, JobStatus.completed)
        self.notifier.notify(job_id, JobStatus.completed.value)
        self.queue.remove_job(job_id)
        logger.info(f"Print completed in {time.monotonic() - started:.1f}s: {label}")
        return PrintResult(True)

    def _fail(self, job_id: str) -> None:
        self.queue.update_job_status(job_id, JobStatus.failed)
        self.notifier.notify(job_id, JobStatus.failed.value)

    # ---------- stages ----------
    async def _acquire(self, job: dict, destination: Path) -> None:
        try:
            url = await self.client.download_url(job["file_key"])
            await asyncio.wait_for(
                self.client.download_file(url, destination, self.download_timeout),
                timeout=self.download_timeout,
            )
        except (httpx.HTTPError, OSError, KeyError, asyncio.TimeoutError) as e:
            raise TransientIOError(f"Download failed: {str(e) or type(e).__name__}")
        logger.info(f"Downloaded {destination.name}")

    async def _normalize(self, source: Path, output: Path, job: dict) -> Path:
        settings = job.get("settings") or {}
        convert = functools.partial(
            convert_to_pdf,
            source,
            job.get("file_name") or source.name,
            output,
            self.engines,
            settings.get("paper_size") or "A4",
            settings.get("orientation") or "portrait",
        )
        try:
            return await self._run_stage(convert, output, timeout=self.conversion_timeout)
        except asyncio.TimeoutError:
            raise ConversionError(f"Conversion timed out after {self.conversion_timeout:g}s")

    async def _subset(self, pdf: Path, output: Path, job: dict) -> Path:
        expression = (job.get("settings") or {}).get("page_ranges")
        if selects_all(expression):
            return pdf
        pages = await self._run_stage(functools.partial(extract_pages, pdf, expression, output), output)
        logger.info(f"Selected pages {pages} of {job.get('job_number', job['id'])}")
        return output

    async def _run_stage(self, fn, output: Path, timeout: Optional[float] = None):
        """
        Run a blocking stage in the executor.

        The worker thread cannot be stopped, so a stage abandoned by timeout
        or cancellation removes its output once the thread is done with it.
        """
        future = self._in_executor(fn)
        try:
            return await asyncio.wait_for(asyncio.shield(future), timeout=timeout)
        except (asyncio.TimeoutError, asyncio.CancelledError):
            if not future.done():
                future.add_done_callback(functools.partial(self._discard_late_output, output))
            raise

    def _discard_late_output(self, output: Path, future: asyncio.Future) -> None:
        if not future.cancelled() and future.exception() is not None:
            logger.debug(f"Abandoned stage for {output.name} failed: {future.exception()}")
        self._schedule_cleanup([output])

    @staticmethod
    def _in_executor(fn):
        return asyncio.get_running_loop().run_in_executor(None, fn)

    def _schedule_cleanup(self, paths: List[Path]) -> None:
        if not paths:
            return
        future = self._in_executor(functools.partial(cleanup_files, list(paths)))
        self._cleanups.add(future)
        future.add_done_callback(self._cleanups.discard)

    async def wait_for_cleanup(self) -> None:
        if self._cleanups:
            await asyncio.gather(*list(self._cleanups), return_exceptions=True)
