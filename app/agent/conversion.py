"""
Normalize job source files to PDF.

Office documents go through an ordered chain of engines: the HTML engine
(mammoth for .docx -> HTML, WeasyPrint for HTML -> PDF) first, then
LibreOffice headless. A failing engine is logged and the next one tried;
only when every engine fails does the job fail. Images are wrapped in a
one-page HTML document sized to the job's paper and rendered by WeasyPrint.
"""

from __future__ import annotations

import html
import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from app.agent.errors import ConversionError

logger = logging.getLogger(__name__)

PDF_EXTENSIONS = {".pdf"}
OFFICE_EXTENSIONS = {".docx", ".doc", ".odt", ".rtf"}
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".gif", ".webp"}

# CSS page size keywords understood by WeasyPrint.
PAGE_SIZES = {"a3": "A3", "a4": "A4", "a5": "A5", "b4": "B4", "b5": "B5", "letter": "letter", "legal": "legal"}

DOCUMENT_CSS = """
@page { size: %(size)s; margin: 12.7mm; }
body { font-family: Calibri, Arial, sans-serif; line-height: 1.6; color: #333; font-size: 11pt; }
p { margin: 12px 0; }
h1, h2, h3, h4, h5, h6 { margin: 18px 0 12px; }
table { border-collapse: collapse; width: 100%; margin: 12px 0; }
th, td { border: 1px solid #ddd; padding: 8px; }
th { background: #f5f5f5; }
img { max-width: 100%; height: auto; }
"""

IMAGE_CSS = """
@page { size: %(size)s; margin: 20mm; }
* { margin: 0; padding: 0; }
body { background: #fff; }
img { display: block; max-width: 100%; max-height: 100%; margin: 0 auto; }
"""


def detect_file_type(file_name: str) -> str:
    """pdf | office | image | unknown, from the file extension."""
    ext = Path(file_name).suffix.lower()
    if ext in PDF_EXTENSIONS:
        return "pdf"
    if ext in OFFICE_EXTENSIONS:
        return "office"
    if ext in IMAGE_EXTENSIONS:
        return "image"
    return "unknown"


def page_size(paper_size: Optional[str], orientation: Optional[str] = "portrait") -> str:
    size = PAGE_SIZES.get((paper_size or "A4").lower(), "A4")
    return f"{size} landscape" if orientation == "landscape" else size


def _render_html(document: str, output: Path) -> Path:
    from weasyprint import HTML

    HTML(string=document, base_url=str(output.parent)).write_pdf(str(output))
    return output


class HtmlEngine:
    """.docx -> HTML (mammoth) -> PDF (WeasyPrint) with fixed document styling."""

    name = "html"

    def convert(self, source: Path, output: Path, paper: str = "A4") -> Path:
        if source.suffix.lower() != ".docx":
            raise ConversionError(f"{self.name} engine only reads .docx, got {source.suffix}")

        import mammoth

        with source.open("rb") as f:
            result = mammoth.convert_to_html(f)
        for message in result.messages:
            logger.debug(f"mammoth: {message}")

        document = (
            "<!DOCTYPE html><html><head><meta charset=\"UTF-8\">"
            f"<style>{DOCUMENT_CSS % {'size': paper}}</style></head>"
            f"<body>{result.value}</body></html>"
        )
        return _render_html(document, output)


class LibreOfficeEngine:
    """Headless LibreOffice `--convert-to pdf`."""

    name = "libreoffice"

    def __init__(self, soffice_path: str = "soffice", timeout: float = 60):
        self.soffice_path = soffice_path
        self.timeout = timeout

    def convert(self, source: Path, output: Path, paper: str = "A4") -> Path:
        cmd = [
            self.soffice_path,
            "--headless",
            "--convert-to",
            "pdf",
            "--outdir",
            str(output.parent),
            str(source),
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, timeout=self.timeout)
        except FileNotFoundError:
            raise ConversionError(f"LibreOffice not found at {self.soffice_path}")
        except subprocess.TimeoutExpired:
            raise ConversionError(f"LibreOffice timed out after {self.timeout:g}s")

        produced = output.parent / f"{source.stem}.pdf"
        if result.returncode != 0 or not produced.exists():
            stderr = result.stderr.decode(errors="replace").strip()
            raise ConversionError(f"LibreOffice exited with {result.returncode}: {stderr}")
        if produced != output:
            produced.replace(output)
        return output


def convert_office(source: Path, output: Path, engines: Sequence, paper: str = "A4") -> Path:
    errors: List[str] = []
    for engine in engines:
        try:
            return engine.convert(source, output, paper)
        except Exception as e:
            logger.warning(f"{engine.name} conversion of {source.name} failed, trying next engine: {e}")
            errors.append(f"{engine.name}: {e}")
    raise ConversionError(f"Could not convert {source.name} to PDF ({'; '.join(errors) or 'no engines'})")


def convert_image(source: Path, output: Path, paper: str = "A4") -> Path:
    document = (
        "<!DOCTYPE html><html><head><meta charset=\"UTF-8\">"
        f"<style>{IMAGE_CSS % {'size': paper}}</style></head>"
        f"<body><img src=\"{html.escape(source.resolve().as_uri())}\"/></body></html>"
    )
    try:
        return _render_html(document, output)
    except Exception as e:
        raise ConversionError(f"Image conversion failed: {e}")


def convert_to_pdf(
    source: Path,
    file_name: str,
    output: Path,
    engines: Sequence,
    paper_size: str = "A4",
    orientation: str = "portrait",
) -> Path:
    """Return a PDF for `source`; PDFs pass through untouched."""
    file_type = detect_file_type(file_name)
    paper = page_size(paper_size, orientation)
    if file_type == "pdf":
        return source
    if file_type == "office":
        return convert_office(source, output, engines, paper)
    if file_type == "image":
        return convert_image(source, output, paper)
    raise ConversionError(f"Unsupported file type: {Path(file_name).suffix or file_name}")


def default_engines(soffice_path: str = "soffice", timeout: float = 60) -> List:
    return [HtmlEngine(), LibreOfficeEngine(soffice_path, timeout)]
