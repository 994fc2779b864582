"""
Registration spreadsheet source.

Reads an entrant export (.xlsx) into partially populated contacts keyed by
email. Only the Email, FirstName and LastName columns are used.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import openpyxl

from ccontact_sync.sync.contact import Contact, EmailAddress

DEFAULT_SHEET_NAME = "Sheet1"

EMAIL_COLUMN = "Email"
FIRST_NAME_COLUMN = "FirstName"
LAST_NAME_COLUMN = "LastName"

logger = logging.getLogger(__name__)


class SpreadsheetError(Exception):
    """Raised when a registration spreadsheet cannot be read."""

    pass


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def load_registrations(
    path: Path | str, sheet_name: str = DEFAULT_SHEET_NAME
) -> dict[str, Contact]:
    """
    Load registrations from a spreadsheet.

    The first row is the header. Rows without an email are ignored. If an
    email appears more than once, the first row wins and later rows are
    logged and skipped.

    Args:
        path: Path to the .xlsx file
        sheet_name: Worksheet holding the registrations

    Returns:
        Mapping of email to a Contact with one email entry and the name fields

    Raises:
        SpreadsheetError: If the file cannot be opened, the sheet is missing
            or there is no Email column
    """
    path = Path(path)
    try:
        workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
    except Exception as e:
        raise SpreadsheetError(f"could not open registration file {path}: {e}") from e

    try:
        if sheet_name not in workbook.sheetnames:
            raise SpreadsheetError(
                f"sheet {sheet_name!r} not found in {path} "
                f"(sheets: {', '.join(workbook.sheetnames)})"
            )
        rows = list(workbook[sheet_name].iter_rows(values_only=True))
    finally:
        workbook.close()

    if not rows:
        logger.warning(f"Registration file {path} is empty")
        return {}

    header = [_cell_text(value) for value in rows[0]]
    if EMAIL_COLUMN not in header:
        raise SpreadsheetError(f"no {EMAIL_COLUMN!r} column in {path}")

    registrations: dict[str, Contact] = {}
    for row in rows[1:]:
        record = {
            header[idx]: _cell_text(value)
            for idx, value in enumerate(row)
            if idx < len(header)
        }
        email = record.get(EMAIL_COLUMN, "")
        if not email:
            continue
        if email in registrations:
            logger.warning(f"{email} has already been used, skipping.")
            continue

        registrations[email] = Contact(
            email_addresses=[EmailAddress(email_address=email)],
            first_name=record.get(FIRST_NAME_COLUMN) or None,
            last_name=record.get(LAST_NAME_COLUMN) or None,
        )

    logger.info(f"Loaded {len(registrations)} registrations from {path}")
    return registrations
