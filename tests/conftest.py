"""Shared fixtures: in-memory Mongo, a shop with one printer, users and PDFs."""

from datetime import datetime
from pathlib import Path

import pytest
import pytest_asyncio
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient
from pypdf import PdfWriter
from starlette.websockets import WebSocketState

from app.core.database import Database
from app.jobs.models import JobCreateRequest, JobSettings


@pytest.fixture
def mock_db():
    """Point Database at an in-memory Motor-compatible client."""
    previous = (Database.client, Database.db)
    Database.client = AsyncMongoMockClient()
    Database.db = Database.client["printly_test"]
    yield Database.db
    Database.client, Database.db = previous


@pytest.fixture
def owner_id() -> str:
    return str(ObjectId())


@pytest_asyncio.fixture
async def shop(mock_db, owner_id):
    doc = {
        "shop_id": "shop_test01",
        "shop_name": "Corner Prints",
        "owner_id": owner_id,
        "pricing": {"bw_per_page": 2, "color_per_page": 8},
        "location": {"address": "12 High St", "city": "Pune", "state": "MH", "pincode": "411001"},
        "status": "active",
        "created_at": datetime.utcnow(),
    }
    result = await mock_db.shops.insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


@pytest_asyncio.fixture
async def printer(mock_db, shop):
    doc = {
        "printer_id": "HP-LaserJet-01",
        "shop_ref": str(shop["_id"]),
        "printer_name": "HP_LaserJet",
        "display_name": "Front desk",
        "capabilities": {"supports_color": True, "supports_duplex": True},
        "pricing": None,
        "status": "online",
        "created_at": datetime.utcnow(),
    }
    result = await mock_db.printers.insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


@pytest.fixture
def owner(owner_id, shop) -> dict:
    """The shop operator as `get_current_user` resolves them."""
    return {
        "id": owner_id,
        "email": "owner@cornerprints.test",
        "shop_ref": str(shop["_id"]),
        "shop_id": shop["shop_id"],
    }


@pytest.fixture
def customer() -> dict:
    return {"id": str(ObjectId()), "email": "asha@example.test", "shop_ref": None, "shop_id": None}


@pytest.fixture
def other_customer() -> dict:
    return {"id": str(ObjectId()), "email": "ravi@example.test", "shop_ref": None, "shop_id": None}


@pytest.fixture
def make_job_request(shop, printer):
    def _make(**overrides) -> JobCreateRequest:
        settings = overrides.pop("settings", {})
        data = {
            "shop_id": shop["shop_id"],
            "printer_id": printer["printer_id"],
            "file_key": f"uploads/{shop['shop_id']}/notes.pdf",
            "file_name": "notes.pdf",
            "settings": JobSettings(**{"total_pages": 5, **settings}),
        }
        data.update(overrides)
        return JobCreateRequest(**data)

    return _make


class FakeConnection:
    """Stands in for a server-side WebSocket in registry tests."""

    def __init__(self, fail: bool = False):
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.sent = []
        self.closed = False
        self.fail = fail

    async def send_text(self, text: str) -> None:
        if self.fail:
            raise RuntimeError("socket gone")
        self.sent.append(text)

    async def close(self, code: int = 1000) -> None:
        self.closed = True
        self.client_state = WebSocketState.DISCONNECTED
        self.application_state = WebSocketState.DISCONNECTED


@pytest.fixture
def fake_connection():
    return FakeConnection


def write_pdf(path: Path, pages: int = 1) -> Path:
    """A real PDF of blank A4 pages, padded past the printable-size floor."""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=595, height=842)
    writer.add_metadata({"/Subject": "x" * 2000})
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        writer.write(f)
    return path


@pytest.fixture
def make_pdf():
    return write_pdf


def make_job_snapshot(job_id: str = None, status: str = "pending", **overrides) -> dict:
    """A job as the agent receives it (JobResponse JSON)."""
    job_id = job_id or str(ObjectId())
    now = datetime.utcnow().isoformat()
    job = {
        "id": job_id,
        "job_number": "PRT-0001",
        "user_id": str(ObjectId()),
        "shop_id": "shop_test01",
        "printer_id": str(ObjectId()),
        "printer_name": "HP_LaserJet",
        "file_key": "uploads/shop_test01/notes.pdf",
        "file_name": "notes.pdf",
        "estimated_cost": 10,
        "status": status,
        "settings": {
            "color_mode": "bw",
            "paper_size": "A4",
            "copies": 1,
            "duplex": False,
            "page_ranges": "all",
            "orientation": "portrait",
            "total_pages": 1,
        },
        "timestamps": {"created": now, "updated": now, "print_started": None, "completed": None},
    }
    job.update(overrides)
    return job


@pytest.fixture
def job_snapshot():
    return make_job_snapshot
