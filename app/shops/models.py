"""Shop Pydantic models and schemas."""

from datetime import datetime
from typing import Optional, List, Literal
from pydantic import BaseModel, Field


# ============================================================================
# Embedded Schemas
# ============================================================================

class Pricing(BaseModel):
    """Per-page prices; a printer's pricing overrides its shop's."""
    bw_per_page: float = Field(default=5, ge=0)
    color_per_page: Optional[float] = Field(default=10, ge=0)


class Location(BaseModel):
    address: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""


class Capabilities(BaseModel):
    supports_color: bool = False
    supports_duplex: bool = False
    paper_sizes: List[str] = Field(default_factory=lambda: ["A4"])
    max_paper_size: str = "A4"


class SystemInfo(BaseModel):
    os: Optional[str] = None
    hostname: Optional[str] = None


PrinterStatus = Literal["online", "offline", "busy", "error"]


# ============================================================================
# Request Schemas
# ============================================================================

class ShopOnboardRequest(BaseModel):
    """Turn the calling user into the owner of a new shop."""
    shop_name: str = Field(..., min_length=2, max_length=120)
    location: Location = Field(default_factory=Location)
    phone: Optional[str] = None
    pricing: Pricing = Field(default_factory=Pricing)


class PrinterUpsert(BaseModel):
    """One printer as detected by the agent."""
    printer_id: str = Field(..., min_length=1)
    printer_name: str = Field(..., min_length=1, description="OS queue name")
    display_name: Optional[str] = None
    capabilities: Capabilities = Field(default_factory=Capabilities)
    pricing: Optional[Pricing] = None
    system_info: Optional[SystemInfo] = None


class PrinterRosterRequest(BaseModel):
    printers: List[PrinterUpsert] = Field(..., min_length=1)


class HeartbeatRequest(BaseModel):
    status: PrinterStatus = "online"


# ============================================================================
# Response Schemas
# ============================================================================

class PrinterResponse(BaseModel):
    id: str
    printer_id: str
    shop_id: str
    printer_name: str
    display_name: str
    capabilities: Capabilities
    pricing: Optional[Pricing] = None
    status: PrinterStatus = "offline"
    last_heartbeat: Optional[datetime] = None


class ShopResponse(BaseModel):
    shop_id: str
    shop_name: str
    pricing: Pricing
    location: Location
    status: str = "active"
    printers: List[PrinterResponse] = Field(default_factory=list)
    created_at: datetime


class PrinterRosterResponse(BaseModel):
    success: bool = True
    count: int
    printers: List[PrinterResponse]
