"""Content digests used for row staleness and local/remote comparison.

Every digest is the lowercase hex SHA-256 of UTF-8 bytes, so the hash of a
file on disk equals :func:`text_sha256` of its decoded text.
"""
from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Optional

READ_BLOCK_SIZE = 64 * 1024


def text_sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def file_sha256(path: str | Path) -> str:
    """Digest the raw bytes of ``path``; line endings count."""

    digest = hashlib.sha256()
    with Path(path).open("rb") as handle:
        for block in iter(lambda: handle.read(READ_BLOCK_SIZE), b""):
            digest.update(block)
    return digest.hexdigest()


def local_file_hash(path: str | Path) -> Optional[str]:
    """Return the digest of the localization file, or ``None`` when absent."""

    target = Path(path).expanduser()
    if not target.is_file():
        return None
    return file_sha256(target)


__all__ = ["file_sha256", "local_file_hash", "text_sha256"]
