"""Printer API routes."""

from fastapi import APIRouter, Depends, Path

from app.core.dependencies import get_current_user
from app.printers.service import PrinterService
from app.shops.models import HeartbeatRequest, PrinterResponse

router = APIRouter(prefix="/printers", tags=["Printers"])


@router.patch("/{printer_id}/heartbeat", response_model=PrinterResponse)
async def heartbeat(
    body: HeartbeatRequest,
    printer_id: str = Path(..., description="Printer external or internal id"),
    current_user: dict = Depends(get_current_user),
):
    """Record agent liveness for one of the caller's printers."""
    printer = await PrinterService.heartbeat(printer_id, body.status, current_user)
    return PrinterService.to_response(printer, current_user["shop_id"])
