"""Copy selected pages of a PDF into a new file."""

from __future__ import annotations

from pathlib import Path
from typing import List

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError

from app.agent.errors import ConversionError, PageRangeError
from app.jobs.page_ranges import PageRangeError as InvalidPageRange
from app.jobs.page_ranges import parse_page_ranges


def extract_pages(source: Path, expression: str, output: Path) -> List[int]:
    """
    Write the pages selected by `expression` to `output`, ascending.

    The page count comes from the document itself, not the job settings.
    Pages are copied as they are, never re-rendered. Returns the page numbers.
    """
    try:
        reader = PdfReader(str(source))
        total = len(reader.pages)
    except (PdfReadError, OSError, ValueError) as e:
        raise ConversionError(f"Could not read {source.name}: {e}")

    try:
        pages = parse_page_ranges(expression, total)
    except InvalidPageRange as e:
        raise PageRangeError(str(e))

    writer = PdfWriter()
    for number in pages:
        writer.add_page(reader.pages[number - 1])
    if reader.metadata:
        writer.add_metadata(reader.metadata)
    with output.open("wb") as f:
        writer.write(f)
    return pages
