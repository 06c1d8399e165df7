"""Files API routes."""

import logging
import os
import uuid

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.core.aws import get_blob_store
from app.core.config import get_settings
from app.core.dependencies import get_current_user
from app.core.exceptions import AppException, ForbiddenException
from app.shops.service import ShopService

router = APIRouter(prefix="/files", tags=["Files"])
settings = get_settings()
logger = logging.getLogger(__name__)


class UploadUrlRequest(BaseModel):
    shop_id: str = Field(..., min_length=1, description="Shop the file will be printed at")
    filename: str = Field(..., min_length=1)
    content_type: str = "application/pdf"


class UploadUrlResponse(BaseModel):
    upload_url: str
    file_key: str
    expires_in: int


class DownloadUrlRequest(BaseModel):
    file_key: str = Field(..., min_length=1)


class DownloadUrlResponse(BaseModel):
    download_url: str
    expires_in: int


def upload_key(shop_id: str, filename: str) -> str:
    ext = os.path.splitext(filename)[1].lower().lstrip(".") or "bin"
    return f"uploads/{shop_id}/{uuid.uuid4()}.{ext}"


@router.post("/upload-url", response_model=UploadUrlResponse)
async def get_upload_url(
    request: UploadUrlRequest,
    current_user: dict = Depends(get_current_user),
):
    """
    Get a presigned URL to upload a file directly to S3.
    User uploads to this URL using PUT method, then submits the job with the returned key.
    """
    shop = await ShopService.get_by_shop_id(request.shop_id)
    file_key = upload_key(shop["shop_id"], request.filename)

    try:
        url = get_blob_store().create_signed_upload_url(file_key, request.content_type)
    except Exception as e:
        logger.error(f"Failed to sign upload for {file_key}: {e}")
        raise AppException(f"Failed to create upload URL: {e}")

    return UploadUrlResponse(
        upload_url=url,
        file_key=file_key,
        expires_in=settings.UPLOAD_URL_EXPIRE_SECONDS,
    )


@router.post("/download-url", response_model=DownloadUrlResponse)
async def get_download_url(
    request: DownloadUrlRequest,
    current_user: dict = Depends(get_current_user),
):
    """Time-limited GET URL for a file uploaded to the caller's shop (used by the printer agent)."""
    shop_id = current_user.get("shop_id")
    if not shop_id or not request.file_key.startswith(f"uploads/{shop_id}/"):
        raise ForbiddenException("Forbidden: File does not belong to your shop")

    try:
        url = get_blob_store().create_signed_download_url(request.file_key)
    except Exception as e:
        logger.error(f"Failed to sign download for {request.file_key}: {e}")
        raise AppException(f"Failed to create download URL: {e}")

    return DownloadUrlResponse(download_url=url, expires_in=settings.DOWNLOAD_URL_EXPIRE_SECONDS)
