# Copyright (c) Syntropy Systems
"""Content-addressed object storage.

Objects live under ``objects/<first 2 hex chars>/<remaining hex chars>``,
which bounds any single directory to 256 shard entries.
"""
from __future__ import annotations

import logging
import os
import string
import tempfile
from contextlib import suppress
from typing import TYPE_CHECKING

from promptvc.errors import NotFoundError, ValidationError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_HEX_DIGITS = frozenset(string.hexdigits)
SHARD_LENGTH = 2


def atomic_write(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` via a sibling temp file and rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            _ = f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise


class ObjectStore:
    """Idempotent blob/commit persistence keyed by digest."""

    objects_dir: Path

    def __init__(self, objects_dir: Path) -> None:
        self.objects_dir = objects_dir

    def _object_path(self, digest: str) -> Path:
        if len(digest) <= SHARD_LENGTH or not _HEX_DIGITS.issuperset(digest):
            msg = f"Invalid object digest: {digest!r}"
            raise ValidationError(msg)
        digest = digest.lower()
        return self.objects_dir / digest[:SHARD_LENGTH] / digest[SHARD_LENGTH:]

    def write(self, digest: str, data: bytes) -> bool:
        """Store ``data`` under ``digest``.

        Returns False when the object is already present; the existing file is
        left untouched.
        """
        path = self._object_path(digest)
        if path.exists():
            logger.debug("Object %s already present", digest)
            return False
        atomic_write(path, data)
        logger.debug("Wrote object %s (%d bytes)", digest, len(data))
        return True

    def read(self, digest: str) -> bytes:
        """Return the stored bytes for ``digest``."""
        path = self._object_path(digest)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            msg = f"Object not found: {digest}"
            raise NotFoundError(msg) from e

    def exists(self, digest: str) -> bool:
        """Check if an object is stored."""
        return self._object_path(digest).is_file()
