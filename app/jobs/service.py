"""Jobs service (API side, async): lookup, authorization, status transitions, deletion."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from app.core.aws import get_blob_store
from app.core.exceptions import ConflictException, ForbiddenException, NotFoundException
from app.jobs.models import JobResponse, JobSettings, JobTimestamps
from app.jobs.repository import JobRepository
from app.jobs.status import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    InvalidTransition,
    JobStatus,
    ensure_transition,
)
from app.shops.service import ShopService

logger = logging.getLogger(__name__)


class JobsService:
    # ==================== Serialization ====================

    @staticmethod
    def to_response(doc: dict, shop_id: str) -> JobResponse:
        """Public snapshot; `shop_id` is the shop's external id."""
        return JobResponse(
            id=str(doc["_id"]),
            job_number=doc["job_number"],
            user_id=doc["user_id"],
            shop_id=shop_id,
            printer_id=doc["printer_ref"],
            printer_name=doc.get("printer_name") or "Default Printer",
            file_key=doc["file_key"],
            file_name=doc["file_name"],
            estimated_cost=doc.get("estimated_cost") or 0,
            status=doc["status"],
            settings=JobSettings(**doc["settings"]),
            timestamps=JobTimestamps(**doc["timestamps"]),
        )

    @classmethod
    async def _to_responses(cls, docs: List[dict], shop_id: Optional[str] = None) -> List[JobResponse]:
        if shop_id is not None:
            return [cls.to_response(d, shop_id) for d in docs]
        shop_ids = await ShopService.shop_ids_for_refs(d["shop_ref"] for d in docs)
        return [cls.to_response(d, shop_ids.get(d["shop_ref"], d["shop_ref"])) for d in docs]

    # ==================== Authorization ====================

    @staticmethod
    def can_access(doc: dict, user: dict) -> bool:
        """The job's owner or its owning shop (compared by internal shop id)."""
        if doc.get("user_id") == user["id"]:
            return True
        return bool(user.get("shop_ref")) and doc.get("shop_ref") == user["shop_ref"]

    @classmethod
    async def _get_accessible(cls, id_or_number: str, user: dict) -> dict:
        doc = await JobRepository.find_job(id_or_number)
        if not doc:
            raise NotFoundException("Job not found")
        if not cls.can_access(doc, user):
            raise ForbiddenException("Forbidden: Not allowed to access this job")
        return doc

    # ==================== Reads ====================

    @classmethod
    async def get_job(cls, id_or_number: str, user: dict) -> JobResponse:
        doc = await cls._get_accessible(id_or_number, user)
        return (await cls._to_responses([doc]))[0]

    @classmethod
    async def list_user_jobs(cls, user_id: str, user: dict) -> List[JobResponse]:
        if user_id != user["id"]:
            raise ForbiddenException("Forbidden: Access denied")
        return await cls._to_responses(await JobRepository.find_jobs_by_user(user_id))

    @classmethod
    async def list_shop_jobs(
        cls,
        shop_id: str,
        user: dict,
        statuses: Optional[Iterable[JobStatus]] = None,
        limit: int = 0,
    ) -> List[JobResponse]:
        shop = await ShopService.get_owned_shop(shop_id, user)
        docs = await JobRepository.find_jobs_by_shop(str(shop["_id"]), statuses, limit=limit)
        return await cls._to_responses(docs, shop_id=shop["shop_id"])

    @classmethod
    async def pending_for_shop(cls, shop_id: str, user: dict) -> List[JobResponse]:
        """What the printer agent reconciles against: pending or printing."""
        return await cls.list_shop_jobs(shop_id, user, ACTIVE_STATUSES)

    @classmethod
    async def history_for_shop(cls, shop_id: str, user: dict, limit: int) -> List[JobResponse]:
        return await cls.list_shop_jobs(shop_id, user, TERMINAL_STATUSES, limit=limit)

    # ==================== Status ====================

    @classmethod
    async def update_status(cls, id_or_number: str, status: JobStatus, user: dict) -> JobResponse:
        doc = await cls._get_accessible(id_or_number, user)
        job_id = str(doc["_id"])

        try:
            ensure_transition(doc["status"], status)
        except InvalidTransition as e:
            raise ConflictException(str(e))

        updated = await JobRepository.update_job_status(job_id, status)
        if updated is None:
            # Lost a race with another transition; report against the fresh state.
            current = await JobRepository.find_job_by_id(job_id)
            if current is None:
                raise NotFoundException("Job not found")
            raise ConflictException(str(InvalidTransition(current["status"], JobStatus(status).value)))

        logger.info(f"Job {updated['job_number']} {doc['status']} -> {updated['status']}")
        return (await cls._to_responses([updated]))[0]

    @classmethod
    async def cancel_job(cls, id_or_number: str, user: dict) -> JobResponse:
        return await cls.update_status(id_or_number, JobStatus.cancelled, user)

    # ==================== Deletion ====================

    @staticmethod
    def _delete_blobs(keys: List[str]) -> None:
        """Best-effort: a blob-store failure never fails the delete request."""
        if not keys:
            return
        try:
            get_blob_store().delete_objects(keys)
        except Exception as e:
            logger.warning(f"Failed to delete {len(keys)} file(s) from blob store: {e}")

    @classmethod
    async def delete_job(cls, id_or_number: str, user: dict) -> int:
        doc = await cls._get_accessible(id_or_number, user)
        deleted = await JobRepository.delete_job(str(doc["_id"]))
        if deleted is None:
            return 0
        cls._delete_blobs([deleted["file_key"]])
        logger.info(f"Deleted job {deleted['job_number']}")
        return 1

    @classmethod
    async def delete_shop_jobs(cls, shop_id: str, user: dict) -> int:
        """Delete every non-terminal job of the caller's shop."""
        shop = await ShopService.get_owned_shop(shop_id, user)
        deleted = await JobRepository.delete_jobs_by_shop(str(shop["_id"]), ACTIVE_STATUSES)
        cls._delete_blobs([d["file_key"] for d in deleted])
        logger.info(f"Deleted {len(deleted)} active job(s) for shop {shop_id}")
        return len(deleted)
