"""Job record store over the `jobs` and `counters` Mongo collections."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument

from app.core.database import Database
from app.jobs.status import JobStatus, sources_for, timestamp_field

# Creation time, with the ObjectId breaking ties between jobs made in the same instant.
NEWEST_FIRST = [("timestamps.created", -1), ("_id", -1)]


def _now() -> datetime:
    return datetime.utcnow()


def _object_id(value: str) -> Optional[ObjectId]:
    return ObjectId(value) if ObjectId.is_valid(value) else None


def _status_values(statuses: Optional[Iterable[str]]) -> Optional[List[str]]:
    if statuses is None:
        return None
    return [JobStatus(s).value for s in statuses]


class JobRepository:
    @staticmethod
    def _collection():
        return Database.get_collection("jobs")

    @staticmethod
    def _counters():
        return Database.get_collection("counters")

    @classmethod
    async def increment_and_get_sequence(cls, name: str) -> int:
        """Atomically bump a named counter and return the new value."""
        counter = await cls._counters().find_one_and_update(
            {"_id": name},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(counter["seq"])

    @classmethod
    async def insert_job(cls, doc: dict) -> dict:
        result = await cls._collection().insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    @classmethod
    async def find_job_by_id(cls, job_id: str) -> Optional[dict]:
        oid = _object_id(job_id)
        if oid is None:
            return None
        return await cls._collection().find_one({"_id": oid})

    @classmethod
    async def find_job_by_number(cls, job_number: str) -> Optional[dict]:
        return await cls._collection().find_one({"job_number": job_number})

    @classmethod
    async def find_job(cls, id_or_number: str) -> Optional[dict]:
        """Look a job up by storage id, falling back to its job number."""
        doc = await cls.find_job_by_id(id_or_number)
        if doc is None:
            doc = await cls.find_job_by_number(id_or_number)
        return doc

    @classmethod
    async def find_jobs_by_shop(
        cls,
        shop_ref: str,
        statuses: Optional[Iterable[str]] = None,
        limit: int = 0,
    ) -> List[dict]:
        query: dict = {"shop_ref": shop_ref}
        values = _status_values(statuses)
        if values is not None:
            query["status"] = {"$in": values}
        cursor = cls._collection().find(query).sort(NEWEST_FIRST)
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list(length=limit or None)

    @classmethod
    async def find_jobs_by_user(cls, user_id: str) -> List[dict]:
        cursor = cls._collection().find({"user_id": user_id}).sort(NEWEST_FIRST)
        return await cursor.to_list(length=None)

    @classmethod
    async def update_job_status(cls, job_id: str, status: str) -> Optional[dict]:
        """
        Move a job to `status` if its current status allows it.

        The legal source statuses are part of the filter, so the check and
        the write are one atomic operation. Returns the updated document, or
        None when the job is missing or the transition is not allowed.
        """
        oid = _object_id(job_id)
        if oid is None:
            return None

        target = JobStatus(status)
        now = _now()
        update = {"status": target.value, "timestamps.updated": now}
        field = timestamp_field(target)
        if field:
            update[f"timestamps.{field}"] = now

        return await cls._collection().find_one_and_update(
            {"_id": oid, "status": {"$in": _status_values(sources_for(target))}},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )

    @classmethod
    async def delete_job(cls, job_id: str) -> Optional[dict]:
        oid = _object_id(job_id)
        if oid is None:
            return None
        return await cls._collection().find_one_and_delete({"_id": oid})

    @classmethod
    async def delete_jobs_by_shop(cls, shop_ref: str, statuses: Iterable[str]) -> List[dict]:
        """Delete the shop's jobs in the given statuses; returns what was removed."""
        docs = await cls.find_jobs_by_shop(shop_ref, statuses)
        if docs:
            await cls._collection().delete_many({"_id": {"$in": [d["_id"] for d in docs]}})
        return docs
