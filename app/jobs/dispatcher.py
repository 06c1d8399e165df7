"""Job creation: numbering, persistence and the NEW_JOB push to the shop's printers."""

from __future__ import annotations

import logging
from datetime import datetime

from pymongo.errors import PyMongoError

from app.core.config import get_settings
from app.core.exceptions import AppException, BadRequestException, NotFoundException
from app.jobs.models import JobCreateRequest, JobCreateResponse
from app.jobs.page_ranges import PageRangeError
from app.jobs.repository import JobRepository
from app.jobs.service import JobsService
from app.jobs.status import JobStatus
from app.printers.service import PrinterService
from app.realtime.channel import ConnectionRegistry
from app.realtime.messages import new_job_message
from app.shops.pricing import estimate_cost
from app.shops.service import ShopService

settings = get_settings()
logger = logging.getLogger(__name__)

JOB_COUNTER = "job_number"


def format_job_number(seq: int) -> str:
    return f"{settings.JOB_NUMBER_PREFIX}-{seq:0{settings.JOB_NUMBER_WIDTH}d}"


class JobDispatcher:
    @classmethod
    async def create_job(
        cls,
        user_id: str,
        req: JobCreateRequest,
        channel: ConnectionRegistry,
    ) -> JobCreateResponse:
        shop = await ShopService.find_by_shop_id(req.shop_id)
        if not shop:
            raise NotFoundException("Shop not found")
        if not req.file_key.startswith(f"uploads/{shop['shop_id']}/"):
            raise BadRequestException("File was not uploaded for this shop")

        printer = await PrinterService.find_printer(req.printer_id)
        if not printer or printer.get("shop_ref") != str(shop["_id"]):
            raise NotFoundException("Printer not found")

        cost = req.estimated_cost
        if cost is None:
            try:
                cost = estimate_cost(req.settings, printer, shop)
            except PageRangeError as e:
                raise BadRequestException(str(e))

        now = datetime.utcnow()
        try:
            seq = await JobRepository.increment_and_get_sequence(JOB_COUNTER)
            doc = await JobRepository.insert_job({
                "job_number": format_job_number(seq),
                "user_id": user_id,
                "shop_ref": str(shop["_id"]),
                "printer_ref": str(printer["_id"]),
                "printer_name": req.printer_name or printer.get("printer_name") or printer.get("display_name"),
                "file_key": req.file_key,
                "file_name": req.file_name,
                "estimated_cost": cost,
                "status": JobStatus.pending.value,
                "settings": req.settings.model_dump(),
                "timestamps": {
                    "created": now,
                    "updated": now,
                    "print_started": None,
                    "completed": None,
                },
            })
        except PyMongoError as e:
            logger.error(f"Failed to create job for shop {req.shop_id}: {e}")
            raise AppException("Failed to create job")

        logger.info(f"Created job {doc['job_number']} for printer {doc['printer_name']} at shop {shop['shop_id']}")

        await cls.publish(channel, shop["shop_id"], doc)
        return JobCreateResponse(job_number=doc["job_number"], job_id=str(doc["_id"]))

    @staticmethod
    async def publish(channel: ConnectionRegistry, shop_id: str, doc: dict) -> int:
        """Push the job snapshot, keyed by the shop's external id, to its live agents."""
        payload = JobsService.to_response(doc, shop_id).model_dump(mode="json")
        delivered = await channel.publish(shop_id, new_job_message(payload))
        logger.info(f"Job {doc['job_number']} delivered to {delivered} printer(s)")
        return delivered
