"""Print job models."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from app.jobs.page_ranges import ALL_PAGES
from app.jobs.status import JobStatus

ColorMode = Literal["bw", "color"]
Orientation = Literal["portrait", "landscape"]


class JobSettings(BaseModel):
    color_mode: ColorMode = "bw"
    paper_size: str = "A4"
    copies: int = Field(default=1, ge=1)
    duplex: bool = False
    page_ranges: str = ALL_PAGES
    orientation: Orientation = "portrait"
    total_pages: int = Field(default=1, ge=1)


class JobTimestamps(BaseModel):
    created: datetime
    updated: datetime
    print_started: Optional[datetime] = None
    completed: Optional[datetime] = None


class JobCreateRequest(BaseModel):
    shop_id: str = Field(..., min_length=1, description="External shop id")
    printer_id: str = Field(..., min_length=1, description="Printer external id or internal id")
    printer_name: Optional[str] = None
    file_key: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1)
    estimated_cost: Optional[float] = Field(default=None, ge=0)
    settings: JobSettings


class JobCreateResponse(BaseModel):
    job_number: str
    job_id: str


class JobResponse(BaseModel):
    """Job snapshot shared by the REST API, the realtime channel and the agent queue."""
    id: str
    job_number: str
    user_id: str
    shop_id: str
    printer_id: str
    printer_name: str
    file_key: str
    file_name: str
    estimated_cost: float = 0
    status: JobStatus
    settings: JobSettings
    timestamps: JobTimestamps


class JobStatusUpdate(BaseModel):
    status: JobStatus


class JobActionResponse(BaseModel):
    success: bool = True
    job: JobResponse


class JobListResponse(BaseModel):
    success: bool = True
    jobs: List[JobResponse]
    count: int


class JobDeleteResponse(BaseModel):
    success: bool = True
    deleted: int
