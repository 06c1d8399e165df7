"""
Printer agent configuration using Pydantic Settings.
Loads from PRINTLY_AGENT_* environment variables / .env file.
"""

import os
import tempfile
from functools import lru_cache
from pydantic_settings import BaseSettings


class AgentSettings(BaseSettings):
    """Printer agent settings loaded from environment variables."""

    BACKEND_URL: str = "http://localhost:8000"
    PRINTER_ID: str = "printer_default_01"
    LOG_LEVEL: str = "INFO"

    # Local state
    DATA_DIR: str = os.path.join(os.path.expanduser("~"), ".printly")
    SCRATCH_DIR: str = os.path.join(tempfile.gettempdir(), "printly")
    CLEANUP_MAX_AGE_HOURS: int = 24

    # Sync and realtime channel
    SYNC_INTERVAL_SECONDS: float = 60
    PING_INTERVAL_SECONDS: float = 30
    RECONNECT_BASE_DELAY_SECONDS: float = 5
    RECONNECT_MAX_DELAY_SECONDS: float = 30
    RECONNECT_MAX_ATTEMPTS: int = 10

    # Timeouts
    HTTP_TIMEOUT_SECONDS: float = 15
    DOWNLOAD_TIMEOUT_SECONDS: float = 120
    CONVERSION_TIMEOUT_SECONDS: float = 60
    PRINT_TIMEOUT_SECONDS: float = 60

    # Printing
    MIN_PRINTABLE_BYTES: int = 1000  # anything smaller is a truncated/empty render
    SOFFICE_PATH: str = "soffice"
    SUMATRA_PATH: str = r"C:\Program Files\SumatraPDF\SumatraPDF.exe"
    PRINT_BACKEND: str = "auto"  # auto | cups | sumatra

    class Config:
        env_prefix = "PRINTLY_AGENT_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def queue_path(self) -> str:
        return os.path.join(self.DATA_DIR, "jobs-queue.json")

    @property
    def ws_url(self) -> str:
        base = self.BACKEND_URL.rstrip("/")
        if base.startswith("https://"):
            return "wss://" + base[len("https://"):] + "/ws"
        if base.startswith("http://"):
            return "ws://" + base[len("http://"):] + "/ws"
        return base + "/ws"


@lru_cache
def get_agent_settings() -> AgentSettings:
    """Cached settings instance."""
    return AgentSettings()
