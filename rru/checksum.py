"""Streaming file digests."""
from __future__ import annotations

import hashlib
from pathlib import Path

__all__ = ["ALGORITHMS", "BUFFER_SIZE", "digest_file", "sha1_file"]

BUFFER_SIZE = 4 * 1024 * 1024

# CLI algorithm id -> hashlib name
ALGORITHMS = {"1": "sha1"}


def digest_file(path: Path | str, algorithm: str = "1", buffer_size: int = BUFFER_SIZE) -> str:
    """Return the lowercase hex digest of *path*, read in *buffer_size* chunks."""
    try:
        name = ALGORITHMS[algorithm]
    except KeyError:
        raise ValueError(
            f"unsupported checksum algorithm '{algorithm}' (choose from {', '.join(ALGORITHMS)})"
        ) from None
    hasher = hashlib.new(name)
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(buffer_size), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def sha1_file(path: Path | str, buffer_size: int = BUFFER_SIZE) -> str:
    return digest_file(path, "1", buffer_size)
