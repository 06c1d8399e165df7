"""Print job API routes."""

from fastapi import APIRouter, Depends, Path

from app.core.dependencies import get_channel, get_current_user
from app.jobs.dispatcher import JobDispatcher
from app.jobs.models import (
    JobActionResponse,
    JobCreateRequest,
    JobCreateResponse,
    JobDeleteResponse,
    JobListResponse,
    JobResponse,
    JobStatusUpdate,
)
from app.jobs.service import JobsService
from app.realtime.channel import ConnectionRegistry

router = APIRouter(prefix="/jobs", tags=["Jobs"])


@router.post("", response_model=JobCreateResponse, status_code=201)
async def create_job(
    body: JobCreateRequest,
    current_user: dict = Depends(get_current_user),
    channel: ConnectionRegistry = Depends(get_channel),
):
    """
    Submit a print job to a shop's printer.

    The job is stored as `pending`, numbered (e.g. PRT-0042) and pushed to
    every printer agent currently connected for the shop. Agents that are
    offline pick it up from the pending view on their next sync.
    """
    return await JobDispatcher.create_job(current_user["id"], body, channel)


@router.get("/user/{user_id}", response_model=JobListResponse)
async def list_user_jobs(
    user_id: str = Path(..., description="User ID"),
    current_user: dict = Depends(get_current_user),
):
    """List the caller's own jobs, newest first."""
    jobs = await JobsService.list_user_jobs(user_id, current_user)
    return JobListResponse(jobs=jobs, count=len(jobs))


@router.get("/shop/{shop_id}", response_model=JobListResponse)
async def list_shop_jobs(
    shop_id: str = Path(..., description="External shop ID"),
    current_user: dict = Depends(get_current_user),
):
    """List every job of the caller's shop, newest first."""
    jobs = await JobsService.list_shop_jobs(shop_id, current_user)
    return JobListResponse(jobs=jobs, count=len(jobs))


@router.delete("/shop/{shop_id}/all", response_model=JobDeleteResponse)
async def delete_shop_jobs(
    shop_id: str = Path(..., description="External shop ID"),
    current_user: dict = Depends(get_current_user),
):
    """Delete the shop's pending and printing jobs along with their files."""
    deleted = await JobsService.delete_shop_jobs(shop_id, current_user)
    return JobDeleteResponse(deleted=deleted)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: str = Path(..., description="Job ID or job number"),
    current_user: dict = Depends(get_current_user),
):
    return await JobsService.get_job(job_id, current_user)


@router.patch("/{job_id}/status", response_model=JobActionResponse)
async def update_job_status(
    body: JobStatusUpdate,
    job_id: str = Path(..., description="Job ID or job number"),
    current_user: dict = Depends(get_current_user),
):
    """
    Move a job along its lifecycle.

    Allowed: pending -> printing | cancelled, printing -> completed | failed.
    Anything else, including any change to a finished job, returns 409.
    """
    job = await JobsService.update_status(job_id, body.status, current_user)
    return JobActionResponse(job=job)


@router.patch("/{job_id}/cancel", response_model=JobActionResponse)
async def cancel_job(
    job_id: str = Path(..., description="Job ID or job number"),
    current_user: dict = Depends(get_current_user),
):
    job = await JobsService.cancel_job(job_id, current_user)
    return JobActionResponse(job=job)


@router.delete("/{job_id}", response_model=JobDeleteResponse)
async def delete_job(
    job_id: str = Path(..., description="Job ID or job number"),
    current_user: dict = Depends(get_current_user),
):
    deleted = await JobsService.delete_job(job_id, current_user)
    return JobDeleteResponse(deleted=deleted)
