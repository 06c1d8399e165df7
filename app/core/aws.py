"""AWS S3 blob store for uploaded print files."""

import logging
import re
from typing import Iterable, List

import boto3
from botocore.exceptions import ClientError
from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class BlobStore:
    """Signed upload/download URLs and deletion for print-job source files."""

    _instance = None
    _s3_client = None

    def __new__(cls):
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            try:
                cls._instance._s3_client = boto3.client(
                    "s3",
                    aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
                    aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
                    region_name=settings.AWS_REGION,
                    config=boto3.session.Config(s3={"addressing_style": "path"}),
                )
            except Exception as e:
                logger.error(f"Failed to initialize S3 client: {e}")
                cls._instance._s3_client = None
        return cls._instance

    @property
    def client(self):
        """Get S3 client."""
        return self._s3_client

    @staticmethod
    def _validated_bucket_name() -> str:
        bucket = (settings.AWS_S3_BUCKET or "").strip()
        if not bucket:
            raise ValueError("AWS_S3_BUCKET is not configured.")
        # https://docs.aws.amazon.com/AmazonS3/latest/userguide/bucketnamingrules.html
        if not re.fullmatch(r"[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]", bucket):
            raise ValueError(f"Invalid AWS_S3_BUCKET value '{bucket}'.")
        return bucket

    def create_signed_upload_url(self, key: str, content_type: str = "application/octet-stream", expiration: int = None) -> str:
        """Presigned PUT URL the submitting client uploads the source file to."""
        if not self.client:
            raise ValueError("AWS S3 credentials not configured.")

        try:
            return self.client.generate_presigned_url(
                ClientMethod="put_object",
                Params={
                    "Bucket": self._validated_bucket_name(),
                    "Key": key,
                    "ContentType": content_type,
                },
                ExpiresIn=expiration or settings.UPLOAD_URL_EXPIRE_SECONDS,
            )
        except ClientError as e:
            logger.error(f"Error generating presigned PUT URL: {e}")
            raise

    def create_signed_download_url(self, key: str, ttl: int = None) -> str:
        """Time-limited GET URL the printer agent downloads the source file from."""
        if not self.client:
            raise ValueError("AWS S3 credentials not configured.")

        try:
            return self.client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self._validated_bucket_name(), "Key": key},
                ExpiresIn=ttl or settings.DOWNLOAD_URL_EXPIRE_SECONDS,
            )
        except ClientError as e:
            logger.error(f"Error generating presigned GET URL: {e}")
            raise

    def delete_objects(self, keys: Iterable[str]) -> List[str]:
        """Delete objects in one batch; returns the keys S3 reported as deleted."""
        keys = [k for k in dict.fromkeys(keys) if k]
        if not keys:
            return []
        if not self.client:
            raise ValueError("AWS S3 credentials not configured.")

        try:
            response = self.client.delete_objects(
                Bucket=self._validated_bucket_name(),
                Delete={"Objects": [{"Key": k} for k in keys], "Quiet": False},
            )
        except ClientError as e:
            logger.error(f"Error deleting files from S3: {e}")
            raise

        for err in response.get("Errors") or []:
            logger.warning(f"S3 refused to delete {err.get('Key')}: {err.get('Message')}")
        return [d["Key"] for d in response.get("Deleted") or []]


def get_blob_store() -> BlobStore:
    return BlobStore()
