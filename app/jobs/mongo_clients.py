"""Sync PyMongo client for the Celery worker (the API uses the shared Motor client)."""

from __future__ import annotations

from functools import lru_cache
from typing import Tuple
from urllib.parse import urlparse

from pymongo import MongoClient

from app.core.config import get_settings


def _effective_mongo_uri_and_db() -> Tuple[str, str]:
    settings = get_settings()
    uri = (settings.MONGODB_URI or "").strip()
    if not uri:
        return (settings.MONGO_URI or "").strip(), (settings.MONGO_DB_NAME or "").strip()

    parsed = urlparse(uri)
    path = (parsed.path or "").lstrip("/")
    db = path.split("/")[0] if path else (settings.MONGO_DB_NAME or "printly")
    return uri, db


@lru_cache
def get_pymongo_db():
    uri, db_name = _effective_mongo_uri_and_db()
    client = MongoClient(uri)
    return client[db_name]
