"""Tests for the printer roster upsert."""

from datetime import datetime

import pytest
import pytest_asyncio
from bson import ObjectId
from fastapi import HTTPException

from app.jobs.dispatcher import JobDispatcher
from app.printers.service import PrinterService
from app.realtime.channel import ConnectionRegistry
from app.shops.models import PrinterUpsert


@pytest_asyncio.fixture
async def other_shop(mock_db):
    doc = {
        "shop_id": "shop_other",
        "shop_name": "Rival Copies",
        "owner_id": str(ObjectId()),
        "pricing": {"bw_per_page": 1, "color_per_page": 5},
        "status": "active",
        "created_at": datetime.utcnow(),
    }
    result = await mock_db.shops.insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


@pytest.mark.asyncio
async def test_roster_creates_and_updates_own_printers(mock_db, shop, printer):
    saved = await PrinterService.upsert_roster(shop, [
        PrinterUpsert(printer_id="HP-LaserJet-01", printer_name="HP_LaserJet", display_name="Counter"),
        PrinterUpsert(printer_id="EPSON-02", printer_name="EPSON_L3250"),
    ])

    assert [p["display_name"] for p in saved] == ["Counter", "EPSON_L3250"]
    assert saved[0]["_id"] == printer["_id"]
    assert await mock_db.printers.count_documents({"shop_ref": str(shop["_id"])}) == 2


@pytest.mark.asyncio
async def test_printer_of_another_shop_cannot_be_claimed(
    mock_db, shop, printer, other_shop, customer, make_job_request
):
    with pytest.raises(HTTPException) as exc:
        await PrinterService.upsert_roster(other_shop, [
            PrinterUpsert(printer_id="EPSON-09", printer_name="EPSON"),
            PrinterUpsert(printer_id="HP-LaserJet-01", printer_name="Stolen"),
        ])

    assert exc.value.status_code == 409
    stored = await mock_db.printers.find_one({"printer_id": "HP-LaserJet-01"})
    assert stored["shop_ref"] == str(shop["_id"])
    assert stored["printer_name"] == "HP_LaserJet"
    assert await mock_db.printers.count_documents({"printer_id": "EPSON-09"}) == 0

    result = await JobDispatcher.create_job(customer["id"], make_job_request(), ConnectionRegistry())
    assert result.job_number == "PRT-0001"
