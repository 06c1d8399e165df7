"""
Application configuration using Pydantic Settings.
Loads from environment variables / .env file.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "Printly API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # MongoDB
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGODB_URI: str = ""  # optional full URI incl. db name (worker)
    MONGO_DB_NAME: str = "printly"

    # JWT
    JWT_SECRET_KEY: str = "your-super-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days

    # Blob storage (S3)
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_REGION: str = "ap-south-1"
    AWS_S3_BUCKET: str = ""
    UPLOAD_URL_EXPIRE_SECONDS: int = 300
    DOWNLOAD_URL_EXPIRE_SECONDS: int = 3600

    # Jobs
    JOB_NUMBER_PREFIX: str = "PRT"
    JOB_NUMBER_WIDTH: int = 4
    JOB_RETENTION_MINUTES: int = 20
    JOB_SWEEP_INTERVAL_MINUTES: int = 5
    JOB_HISTORY_LIMIT: int = 100

    # Pricing fallbacks (per page)
    DEFAULT_BW_PER_PAGE: float = 5
    DEFAULT_COLOR_PER_PAGE: float = 10

    # Realtime channel
    WS_IDLE_TIMEOUT_SECONDS: float = 90

    # Celery (SQS broker)
    CELERY_BROKER_URL: str = "sqs://"
    CELERY_QUEUE_PREFIX: str = "printly-"
    SQS_DEFAULT_QUEUE_URL: str = ""
    CELERY_VISIBILITY_TIMEOUT: int = 3600
    CELERY_POLLING_INTERVAL: float = 1.0
    CELERY_WAIT_TIME_SECONDS: int = 10
    CELERY_TASK_TIME_LIMIT: int = 0
    CELERY_TASK_SOFT_TIME_LIMIT: int = 0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
