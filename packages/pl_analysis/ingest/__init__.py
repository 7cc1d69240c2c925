"""Workbook ingestion helpers."""

from .workbook import DecodedSheet, WorkbookError, read_workbook

__all__ = ["DecodedSheet", "WorkbookError", "read_workbook"]
