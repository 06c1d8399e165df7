"""Tests for copying selected pages out of a PDF."""

import pytest
from pypdf import PdfReader

from app.agent.errors import ConversionError, PageRangeError
from app.agent.subset import extract_pages


def test_extracts_selected_pages(tmp_path, make_pdf):
    source = make_pdf(tmp_path / "book.pdf", pages=12)
    output = tmp_path / "subset.pdf"

    pages = extract_pages(source, "10-12,1-3,5", output)

    assert pages == [1, 2, 3, 5, 10, 11, 12]
    assert len(PdfReader(str(output)).pages) == 7


def test_page_count_comes_from_the_document(tmp_path, make_pdf):
    source = make_pdf(tmp_path / "short.pdf", pages=3)
    assert extract_pages(source, "2-99", tmp_path / "out.pdf") == [2, 3]


def test_nothing_selected(tmp_path, make_pdf):
    source = make_pdf(tmp_path / "short.pdf", pages=3)
    with pytest.raises(PageRangeError):
        extract_pages(source, "7-9", tmp_path / "out.pdf")


def test_unreadable_pdf(tmp_path):
    source = tmp_path / "broken.pdf"
    source.write_bytes(b"this is not a pdf")
    with pytest.raises(ConversionError):
        extract_pages(source, "1", tmp_path / "out.pdf")


def test_document_info_carried_over(tmp_path, make_pdf):
    source = make_pdf(tmp_path / "book.pdf", pages=4)
    output = tmp_path / "subset.pdf"

    extract_pages(source, "2-3", output)

    assert PdfReader(str(output)).metadata["/Subject"] == "x" * 2000
    assert output.stat().st_size > 1000
