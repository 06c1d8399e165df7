"""Job cost estimate from printer/shop pricing."""

from __future__ import annotations

from typing import Optional

from app.core.config import get_settings
from app.jobs.models import JobSettings
from app.jobs.page_ranges import parse_page_ranges

settings = get_settings()


def per_page_rate(color_mode: str, printer: Optional[dict], shop: Optional[dict]) -> float:
    """Printer override first, then the shop default, then the configured fallback."""
    key = "color_per_page" if color_mode == "color" else "bw_per_page"
    for owner in (printer, shop):
        pricing = (owner or {}).get("pricing") or {}
        if pricing.get(key) is not None:
            return float(pricing[key])
    return float(settings.DEFAULT_COLOR_PER_PAGE if color_mode == "color" else settings.DEFAULT_BW_PER_PAGE)


def estimate_cost(job_settings: JobSettings, printer: Optional[dict], shop: Optional[dict]) -> float:
    pages = len(parse_page_ranges(job_settings.page_ranges, job_settings.total_pages))
    rate = per_page_rate(job_settings.color_mode, printer, shop)
    return round(pages * job_settings.copies * rate, 2)
