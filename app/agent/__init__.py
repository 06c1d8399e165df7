"""Printer agent: runs next to the shop's printers and executes print jobs."""
