# Copyright (c) Syntropy Systems
"""Content digests."""

from __future__ import annotations

import hashlib

SHORT_HASH_LENGTH = 7


def hash_bytes(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def hash_content(content: str) -> str:
    """Return the SHA-256 hex digest of UTF-8 encoded text."""
    return hash_bytes(content.encode("utf-8"))


def short_hash(digest: str) -> str:
    """Truncate a digest for display."""
    return digest[:SHORT_HASH_LENGTH]
