"""
Page-range expressions such as ``"1-3,5,10-12"``.

Tokens are comma separated; each is a page ``n`` or an inclusive range
``a-b``. Pages outside ``1..total_pages`` are dropped (range ends are
clamped), malformed tokens are skipped, and the result is ascending with
duplicates collapsed. ``""`` and ``"all"`` select every page.
"""

from __future__ import annotations

import re
from typing import List, Optional

ALL_PAGES = "all"

_SINGLE = re.compile(r"^\d+$")
_RANGE = re.compile(r"^(\d+)\s*-\s*(\d+)$")


class PageRangeError(ValueError):
    """The expression selects no page of the document."""


def selects_all(expression: Optional[str]) -> bool:
    return not expression or expression.strip().lower() in ("", ALL_PAGES)


def parse_page_ranges(expression: Optional[str], total_pages: int) -> List[int]:
    """Resolve an expression to explicit 1-based page numbers.

    Raises PageRangeError when nothing valid remains; an all-invalid
    expression never falls back to "all pages".
    """
    if total_pages < 1:
        raise PageRangeError("Document has no pages")
    if selects_all(expression):
        return list(range(1, total_pages + 1))

    pages = set()
    for token in expression.split(","):
        token = token.strip()
        if _SINGLE.match(token):
            page = int(token)
            if 1 <= page <= total_pages:
                pages.add(page)
            continue

        match = _RANGE.match(token)
        if match:
            start = max(int(match.group(1)), 1)
            end = min(int(match.group(2)), total_pages)
            pages.update(range(start, end + 1))

    if not pages:
        raise PageRangeError(f"Page range {expression!r} selects no pages of a {total_pages}-page document")
    return sorted(pages)
