"""HTTP client for the Printly API as used by the printer agent."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


class PrintlyClient:
    """Thin async wrapper over the REST endpoints; raises httpx errors on failure."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url + API_PREFIX,
            timeout=timeout,
            transport=transport,
        )
        # Signed blob URLs are absolute and must not carry our bearer token.
        self._blob_client = httpx.AsyncClient(transport=transport, follow_redirects=True)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        response = await self._client.request(method, path, headers=self._headers(), **kwargs)
        response.raise_for_status()
        return response.json() if response.content else None

    async def aclose(self) -> None:
        await self._client.aclose()
        await self._blob_client.aclose()

    # ---------- auth ----------
    async def login(self, email: str, password: str) -> dict:
        data = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        self.token = data["access_token"]
        return data

    # ---------- jobs ----------
    async def pending_jobs(self, shop_id: str) -> List[dict]:
        data = await self._request("GET", f"/shops/{shop_id}/jobs/pending")
        return data.get("jobs") or []

    async def job_history(self, shop_id: str, limit: int = 200) -> List[dict]:
        data = await self._request("GET", f"/shops/{shop_id}/jobs/history", params={"limit": limit})
        return data.get("jobs") or []

    async def update_job_status(self, job_id: str, status: str) -> dict:
        return await self._request("PATCH", f"/jobs/{job_id}/status", json={"status": status})

    async def delete_job(self, job_id: str) -> dict:
        return await self._request("DELETE", f"/jobs/{job_id}")

    async def delete_shop_jobs(self, shop_id: str) -> dict:
        return await self._request("DELETE", f"/jobs/shop/{shop_id}/all")

    # ---------- printers ----------
    async def save_printers(self, shop_id: str, printers: List[dict]) -> dict:
        return await self._request("POST", f"/shops/{shop_id}/printers", json={"printers": printers})

    async def heartbeat(self, printer_id: str, status: str = "online") -> dict:
        return await self._request("PATCH", f"/printers/{printer_id}/heartbeat", json={"status": status})

    # ---------- files ----------
    async def download_url(self, file_key: str) -> str:
        data = await self._request("POST", "/files/download-url", json={"file_key": file_key})
        return data["download_url"]

    async def download_file(self, url: str, destination: Path, timeout: float) -> Path:
        """Stream a signed URL to disk."""
        destination.parent.mkdir(parents=True, exist_ok=True)
        async with self._blob_client.stream("GET", url, timeout=timeout) as response:
            response.raise_for_status()
            with destination.open("wb") as f:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)
        return destination
