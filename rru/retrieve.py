"""Fetch raw metadata text from a local path or an http(s) URL."""
from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import urlparse

import requests

from .errors import RetrievalError

__all__ = ["retrieve_text"]

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def retrieve_text(location: str | Path, *, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Return the text at *location*.

    An existing file wins over URL interpretation, so a relative path that
    happens to look like a host name still reads from disk.
    """
    path = Path(location)
    if path.is_file():
        logger.debug("Reading metadata from %s", path)
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise RetrievalError(f"Failed to read metadata file {path}: {exc}") from exc

    url = str(location)
    if urlparse(url).scheme not in {"http", "https"}:
        raise RetrievalError(f"No such file and not an http(s) URL: {url}")

    logger.info("Fetching metadata from %s", url)
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise RetrievalError(f"Failed to fetch metadata from {url}: {exc}") from exc
    # requests falls back to ISO-8859-1 for text/* without a charset; the exports are UTF-8
    if "charset" not in response.headers.get("Content-Type", "").lower():
        response.encoding = "utf-8"
    return response.text
