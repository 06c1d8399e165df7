"""Errors raised while executing a print job on the agent."""


class PrintJobError(Exception):
    """Base class; any of these ends the job in `failed`."""


class TransientIOError(PrintJobError):
    """Signed URL or file download failed (network, timeout, non-2xx)."""


class ConversionError(PrintJobError):
    """Source format unsupported, or every conversion engine failed."""


class PageRangeError(PrintJobError):
    """Page-range expression selected no pages of the document."""


class DispatchError(PrintJobError):
    """The OS printer rejected the job, or the output failed the size check."""
