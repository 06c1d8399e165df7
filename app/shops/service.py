"""Shop service: lookup, ownership, onboarding and pricing."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from bson import ObjectId

from app.core.database import Database
from app.core.exceptions import BadRequestException, ForbiddenException, NotFoundException
from app.shops.models import Location, Pricing, ShopOnboardRequest, ShopResponse

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.utcnow()


class ShopService:
    @staticmethod
    def _collection():
        return Database.get_collection("shops")

    @classmethod
    async def find_by_shop_id(cls, shop_id: str) -> Optional[dict]:
        return await cls._collection().find_one({"shop_id": shop_id})

    @classmethod
    async def get_by_shop_id(cls, shop_id: str) -> dict:
        shop = await cls.find_by_shop_id(shop_id)
        if not shop:
            raise NotFoundException("Shop not found")
        return shop

    @classmethod
    async def find_by_ref(cls, shop_ref: str) -> Optional[dict]:
        if not ObjectId.is_valid(shop_ref):
            return None
        return await cls._collection().find_one({"_id": ObjectId(shop_ref)})

    @classmethod
    async def shop_ids_for_refs(cls, shop_refs: Iterable[str]) -> Dict[str, str]:
        """Map internal shop ids to external ones."""
        oids = [ObjectId(r) for r in set(shop_refs) if ObjectId.is_valid(r)]
        if not oids:
            return {}
        cursor = cls._collection().find({"_id": {"$in": oids}}, {"shop_id": 1})
        return {str(doc["_id"]): doc["shop_id"] for doc in await cursor.to_list(length=None)}

    @staticmethod
    def is_owner(shop: dict, user: dict) -> bool:
        """Ownership is decided on the shop's internal id, everywhere."""
        return bool(user.get("shop_ref")) and user["shop_ref"] == str(shop["_id"])

    @classmethod
    async def get_owned_shop(cls, shop_id: str, user: dict) -> dict:
        shop = await cls.get_by_shop_id(shop_id)
        if not cls.is_owner(shop, user):
            raise ForbiddenException("Forbidden: Access denied")
        return shop

    @classmethod
    async def onboard(cls, user: dict, req: ShopOnboardRequest) -> dict:
        if user.get("shop_ref"):
            raise BadRequestException("User already operates a shop")

        doc = {
            "shop_id": f"shop_{secrets.token_urlsafe(8)}",
            "shop_name": req.shop_name,
            "owner_id": user["id"],
            "pricing": req.pricing.model_dump(),
            "location": req.location.model_dump(),
            "contact": {"email": user.get("email"), "phone": req.phone},
            "status": "active",
            "created_at": _now(),
        }
        result = await cls._collection().insert_one(doc)
        doc["_id"] = result.inserted_id

        if ObjectId.is_valid(user["id"]):
            await Database.get_collection("users").update_one(
                {"_id": ObjectId(user["id"])}, {"$set": {"role": "shop_owner"}}
            )

        logger.info(f"Onboarded shop {doc['shop_id']} for user {user['id']}")
        return doc

    @classmethod
    async def update_pricing(cls, shop: dict, pricing: Pricing) -> dict:
        await cls._collection().update_one(
            {"_id": shop["_id"]}, {"$set": {"pricing": pricing.model_dump()}}
        )
        shop["pricing"] = pricing.model_dump()
        return shop

    @staticmethod
    def to_response(shop: dict, printers: Optional[List] = None) -> ShopResponse:
        return ShopResponse(
            shop_id=shop["shop_id"],
            shop_name=shop["shop_name"],
            pricing=Pricing(**(shop.get("pricing") or {})),
            location=Location(**(shop.get("location") or {})),
            status=shop.get("status", "active"),
            printers=printers or [],
            created_at=shop["created_at"],
        )
