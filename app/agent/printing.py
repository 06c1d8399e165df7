"""Hand a finished PDF to the operating system's print spooler."""

from __future__ import annotations

import asyncio
import logging
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from app.agent.errors import DispatchError

logger = logging.getLogger(__name__)


@dataclass
class PrintOptions:
    printer: str
    copies: int = 1
    monochrome: bool = False
    duplex: Optional[str] = None  # "long-edge" | "short-edge"
    paper_size: str = "A4"
    landscape: bool = False


def build_print_options(job: dict) -> PrintOptions:
    """
    Spooler options for a job.

    Duplex binds on the long edge in portrait and on the short edge in
    landscape, so both read the same way when the sheet is turned.
    """
    settings = job.get("settings") or {}
    landscape = settings.get("orientation") == "landscape"
    duplex = None
    if settings.get("duplex"):
        duplex = "short-edge" if landscape else "long-edge"
    return PrintOptions(
        printer=job.get("printer_name") or "",
        copies=max(int(settings.get("copies") or 1), 1),
        monochrome=settings.get("color_mode", "bw") == "bw",
        duplex=duplex,
        paper_size=settings.get("paper_size") or "A4",
        landscape=landscape,
    )


def ensure_printable(path: Path, min_bytes: int) -> int:
    """Refuse to print a file that is too small to be a real document."""
    try:
        size = path.stat().st_size
    except OSError as e:
        raise DispatchError(f"Output file missing: {e}")
    if size < min_bytes:
        raise DispatchError(f"File too small ({size} bytes)")
    return size


class PrinterBackend:
    """Runs one spooler command; its exit status is the completion signal."""

    name = "base"

    def command(self, path: Path, options: PrintOptions) -> List[str]:
        raise NotImplementedError

    async def dispatch(self, path: Path, options: PrintOptions, timeout: float) -> None:
        cmd = self.command(path, options)
        logger.info(f"Sending {path.name} to {options.printer or 'default printer'} via {self.name}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            raise DispatchError(f"{self.name} print command unavailable: {e}")

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise DispatchError(f"Printer did not accept the job within {timeout:g}s")

        if proc.returncode != 0:
            detail = (stderr or b"").decode(errors="replace").strip()
            raise DispatchError(f"Printer rejected the job (exit {proc.returncode}): {detail}")


class CupsPrinter(PrinterBackend):
    """CUPS `lp` (Linux, macOS)."""

    name = "cups"

    def command(self, path: Path, options: PrintOptions) -> List[str]:
        cmd = ["lp"]
        if options.printer:
            cmd += ["-d", options.printer]
        cmd += ["-n", str(options.copies), "-o", "fit-to-page", "-o", f"media={options.paper_size}"]
        if options.monochrome:
            cmd += ["-o", "ColorModel=Gray"]
        if options.duplex == "long-edge":
            cmd += ["-o", "sides=two-sided-long-edge"]
        elif options.duplex == "short-edge":
            cmd += ["-o", "sides=two-sided-short-edge"]
        else:
            cmd += ["-o", "sides=one-sided"]
        if options.landscape:
            cmd += ["-o", "landscape"]
        cmd.append(str(path))
        return cmd


class SumatraPrinter(PrinterBackend):
    """SumatraPDF silent printing (Windows)."""

    name = "sumatra"

    def __init__(self, executable: str):
        self.executable = executable

    def command(self, path: Path, options: PrintOptions) -> List[str]:
        settings = [f"{options.copies}x", "fit", "monochrome" if options.monochrome else "color"]
        if options.duplex == "long-edge":
            settings.append("duplexlong")
        elif options.duplex == "short-edge":
            settings.append("duplexshort")
        else:
            settings.append("simplex")
        settings.append(f"paper={options.paper_size}")
        settings.append("landscape" if options.landscape else "portrait")

        cmd = [self.executable]
        cmd += ["-print-to", options.printer] if options.printer else ["-print-to-default"]
        cmd += ["-print-settings", ",".join(settings), "-silent", str(path)]
        return cmd


def select_backend(kind: str = "auto", sumatra_path: str = "SumatraPDF.exe") -> PrinterBackend:
    kind = (kind or "auto").lower()
    if kind == "auto":
        kind = "sumatra" if platform.system() == "Windows" else "cups"
    if kind == "sumatra":
        return SumatraPrinter(sumatra_path)
    if kind == "cups":
        return CupsPrinter()
    raise ValueError(f"Unknown print backend '{kind}'")
