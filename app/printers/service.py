"""Printer roster and liveness."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.core.database import Database
from app.core.exceptions import ConflictException, ForbiddenException, NotFoundException
from app.shops.models import Capabilities, Pricing, PrinterResponse, PrinterUpsert

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.utcnow()


class PrinterService:
    @staticmethod
    def _collection():
        return Database.get_collection("printers")

    @classmethod
    async def find_printer(cls, value: str) -> Optional[dict]:
        """Resolve by external printer id first, then as an internal id if it parses as one."""
        printer = await cls._collection().find_one({"printer_id": value})
        if printer is None and ObjectId.is_valid(value):
            printer = await cls._collection().find_one({"_id": ObjectId(value)})
        return printer

    @classmethod
    async def list_for_shop(cls, shop_ref: str) -> List[dict]:
        cursor = cls._collection().find({"shop_ref": shop_ref}).sort("created_at", 1)
        return await cursor.to_list(length=None)

    @classmethod
    async def upsert_roster(cls, shop: dict, printers: List[PrinterUpsert]) -> List[dict]:
        """
        Create or update each printer of the shop.

        A printer id registered to another shop is a 409; nothing is written.
        """
        shop_ref = str(shop["_id"])
        taken = await cls._collection().find_one(
            {"printer_id": {"$in": [p.printer_id for p in printers]}, "shop_ref": {"$ne": shop_ref}}
        )
        if taken:
            raise ConflictException(f"Printer {taken['printer_id']} belongs to another shop")

        saved = []
        for item in printers:
            try:
                doc = await cls._upsert(shop_ref, item)
            except DuplicateKeyError:
                raise ConflictException(f"Printer {item.printer_id} belongs to another shop")
            saved.append(doc)
        logger.info(f"Saved {len(saved)} printer(s) for shop {shop['shop_id']}")
        return saved

    @classmethod
    async def _upsert(cls, shop_ref: str, item: PrinterUpsert) -> dict:
        return await cls._collection().find_one_and_update(
            {"printer_id": item.printer_id, "shop_ref": shop_ref},
            {
                "$set": {
                    "printer_name": item.printer_name,
                    "display_name": item.display_name or item.printer_name,
                    "capabilities": item.capabilities.model_dump(),
                    "pricing": item.pricing.model_dump() if item.pricing else None,
                    "system_info": item.system_info.model_dump() if item.system_info else None,
                    "status": "online",
                    "last_heartbeat": _now(),
                },
                "$setOnInsert": {"created_at": _now()},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

    @classmethod
    async def heartbeat(cls, printer_id: str, status: str, user: dict) -> dict:
        printer = await cls.find_printer(printer_id)
        if not printer:
            raise NotFoundException("Printer not found")
        if not user.get("shop_ref") or printer.get("shop_ref") != user["shop_ref"]:
            raise ForbiddenException("Forbidden: Not your printer")

        return await cls._collection().find_one_and_update(
            {"_id": printer["_id"]},
            {"$set": {"status": status, "last_heartbeat": _now()}},
            return_document=ReturnDocument.AFTER,
        )

    @staticmethod
    def to_response(printer: dict, shop_id: str) -> PrinterResponse:
        pricing = printer.get("pricing")
        return PrinterResponse(
            id=str(printer["_id"]),
            printer_id=printer["printer_id"],
            shop_id=shop_id,
            printer_name=printer.get("printer_name") or "Generic Printer",
            display_name=printer.get("display_name") or printer.get("printer_name") or "Counter Printer",
            capabilities=Capabilities(**(printer.get("capabilities") or {})),
            pricing=Pricing(**pricing) if pricing else None,
            status=printer.get("status", "offline"),
            last_heartbeat=printer.get("last_heartbeat"),
        )
