"""
Entrant export files.

Downloads export files from the registration site and finds the most recent
one in the downloads directory.
"""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

import requests

from ccontact_sync import __version__

DEFAULT_DOWNLOADS_DIR = "downloads"

# HTTP timeout configuration
DOWNLOAD_TIMEOUT = 60.0  # seconds

DOWNLOAD_CHUNK_SIZE = 64 * 1024

# In-progress downloads; never picked as the latest export
PARTIAL_SUFFIX = ".part"

logger = logging.getLogger(__name__)


class ExportError(Exception):
    """Raised when an export cannot be found or downloaded."""

    pass


def latest_export(downloads_dir: Path | str = DEFAULT_DOWNLOADS_DIR) -> Path:
    """
    Return the most recent export file.

    "Most recent" is the last entry of the sorted directory listing; export
    file names sort chronologically, and contents are not inspected.

    Raises:
        ExportError: If the directory is missing or holds no files
    """
    downloads_dir = Path(downloads_dir)
    try:
        files = sorted(
            p
            for p in downloads_dir.iterdir()
            if p.is_file() and not p.name.endswith(PARTIAL_SUFFIX)
        )
    except OSError as e:
        raise ExportError(f"could not read downloads in {downloads_dir}: {e}") from e

    if not files:
        raise ExportError(f"no export files in {downloads_dir}")

    logger.debug(f"Latest export: {files[-1]}")
    return files[-1]


def download_export(
    url: str,
    downloads_dir: Path | str = DEFAULT_DOWNLOADS_DIR,
    session: Optional[requests.Session] = None,
    timeout: float = DOWNLOAD_TIMEOUT,
) -> Path:
    """
    Download an export file into the downloads directory.

    The file is named after the last segment of the URL path and replaces
    any file of the same name. It is written under a .part name and only
    renamed once complete, so a failed download leaves nothing behind.

    Args:
        url: Absolute http(s) URL of the export
        downloads_dir: Directory to save into (created if missing)
        session: Optional requests.Session to download with
        timeout: Request timeout in seconds

    Returns:
        Path of the downloaded file

    Raises:
        ExportError: If the URL is unusable or the download fails
    """
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https"):
        raise ExportError(f"invalid export URL: {url}")

    name = posixpath.basename(parts.path)
    if not name:
        raise ExportError(f"export URL has no file name: {url}")

    downloads_dir = Path(downloads_dir)
    target = downloads_dir / name
    partial = target.with_name(name + PARTIAL_SUFFIX)
    http = session if session is not None else requests.Session()

    try:
        downloads_dir.mkdir(parents=True, exist_ok=True)
        with http.get(
            url,
            stream=True,
            timeout=timeout,
            headers={"User-Agent": f"ccontact-sync/{__version__}"},
        ) as response:
            response.raise_for_status()
            with open(partial, "wb") as f:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    f.write(chunk)
        partial.replace(target)
    except requests.RequestException as e:
        partial.unlink(missing_ok=True)
        raise ExportError(f"could not download {url}: {e}") from e
    except OSError as e:
        partial.unlink(missing_ok=True)
        raise ExportError(f"could not save {url} to {target}: {e}") from e

    logger.info(f"Downloaded export to {target}")
    return target
