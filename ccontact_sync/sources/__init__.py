"""
ccontact_sync.sources - Registration inputs

Reads registration spreadsheets and locates or downloads export files.
"""

from ccontact_sync.sources.exports import ExportError, download_export, latest_export
from ccontact_sync.sources.spreadsheet import SpreadsheetError, load_registrations

__all__ = [
    "ExportError",
    "SpreadsheetError",
    "download_export",
    "latest_export",
    "load_registrations",
]
