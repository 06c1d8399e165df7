"""Shop API routes: onboarding, pricing, printer roster and the agent job views."""

from fastapi import APIRouter, Depends, Path, Query

from app.core.config import get_settings
from app.core.dependencies import get_current_user
from app.jobs.models import JobListResponse
from app.jobs.service import JobsService
from app.printers.service import PrinterService
from app.shops.models import (
    Pricing,
    PrinterRosterRequest,
    PrinterRosterResponse,
    ShopOnboardRequest,
    ShopResponse,
)
from app.shops.service import ShopService

router = APIRouter(prefix="/shops", tags=["Shops"])
settings = get_settings()


@router.post("/onboard", response_model=ShopResponse, status_code=201)
async def onboard_shop(
    body: ShopOnboardRequest,
    current_user: dict = Depends(get_current_user),
):
    """Register a new shop owned by the caller."""
    shop = await ShopService.onboard(current_user, body)
    return ShopService.to_response(shop)


@router.get("/{shop_id}", response_model=ShopResponse)
async def get_shop(shop_id: str = Path(..., description="External shop ID")):
    """Public shop profile with its printers, used by the job submission page."""
    shop = await ShopService.get_by_shop_id(shop_id)
    printers = await PrinterService.list_for_shop(str(shop["_id"]))
    return ShopService.to_response(
        shop, [PrinterService.to_response(p, shop["shop_id"]) for p in printers]
    )


@router.get("/{shop_id}/pricing", response_model=Pricing)
async def get_pricing(shop_id: str = Path(..., description="External shop ID")):
    shop = await ShopService.get_by_shop_id(shop_id)
    return Pricing(**(shop.get("pricing") or {}))


@router.put("/{shop_id}/pricing", response_model=Pricing)
async def update_pricing(
    body: Pricing,
    shop_id: str = Path(..., description="External shop ID"),
    current_user: dict = Depends(get_current_user),
):
    shop = await ShopService.get_owned_shop(shop_id, current_user)
    shop = await ShopService.update_pricing(shop, body)
    return Pricing(**shop["pricing"])


@router.post("/{shop_id}/printers", response_model=PrinterRosterResponse)
async def save_printers(
    body: PrinterRosterRequest,
    shop_id: str = Path(..., description="External shop ID"),
    current_user: dict = Depends(get_current_user),
):
    """Create or update the printers the shop's agent detected."""
    shop = await ShopService.get_owned_shop(shop_id, current_user)
    saved = await PrinterService.upsert_roster(shop, body.printers)
    printers = [PrinterService.to_response(p, shop["shop_id"]) for p in saved]
    return PrinterRosterResponse(count=len(printers), printers=printers)


@router.get("/{shop_id}/printers", response_model=PrinterRosterResponse)
async def list_printers(shop_id: str = Path(..., description="External shop ID")):
    shop = await ShopService.get_by_shop_id(shop_id)
    printers = [
        PrinterService.to_response(p, shop["shop_id"])
        for p in await PrinterService.list_for_shop(str(shop["_id"]))
    ]
    return PrinterRosterResponse(count=len(printers), printers=printers)


@router.get("/{shop_id}/jobs/pending", response_model=JobListResponse)
async def pending_jobs(
    shop_id: str = Path(..., description="External shop ID"),
    current_user: dict = Depends(get_current_user),
):
    """
    Jobs that are still pending or printing.

    The printer agent pulls this on startup and periodically, so jobs pushed
    while it was offline are not lost.
    """
    jobs = await JobsService.pending_for_shop(shop_id, current_user)
    return JobListResponse(jobs=jobs, count=len(jobs))


@router.get("/{shop_id}/jobs/history", response_model=JobListResponse)
async def job_history(
    shop_id: str = Path(..., description="External shop ID"),
    limit: int = Query(default=settings.JOB_HISTORY_LIMIT, ge=1, le=500),
    current_user: dict = Depends(get_current_user),
):
    """Finished jobs (completed, failed, cancelled), newest first."""
    jobs = await JobsService.history_for_shop(shop_id, current_user, limit)
    return JobListResponse(jobs=jobs, count=len(jobs))
