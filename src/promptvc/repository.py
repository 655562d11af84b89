# Copyright (c) Syntropy Systems
"""Prompt repository: staging index, linear commit history and HEAD."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import ValidationError as PydanticValidationError

from promptvc.config import PVC_DIR_NAME, default_config_data, require_pvc_dir
from promptvc.errors import (
    AlreadyInitializedError,
    CorruptRepositoryError,
    NothingToCommitError,
    NotFoundError,
    ValidationError,
)
from promptvc.hashing import hash_bytes, hash_content, short_hash
from promptvc.models.objects import Blob, Commit, StagedFile, StagingIndex, parse_object
from promptvc.store import ObjectStore, atomic_write

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)

HEAD_REF = "HEAD"


def commit_timestamp() -> str:
    """Current UTC time as ISO-8601 with milliseconds."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Repository:
    """A prompt repository rooted at ``root`` with metadata in ``root/.pvc``.

    History is strictly linear: a single HEAD pointer plus commits that link
    back to their parent. There are no branches.
    """

    root: Path
    pvc_dir: Path
    objects_dir: Path
    test_runs_dir: Path
    index_path: Path
    head_path: Path
    config_path: Path
    store: ObjectStore

    def __init__(self, root: Path) -> None:
        self.root = root.resolve()
        self.pvc_dir = self.root / PVC_DIR_NAME
        self.objects_dir = self.pvc_dir / "objects"
        self.test_runs_dir = self.pvc_dir / "test-runs"
        self.index_path = self.pvc_dir / "index.json"
        self.head_path = self.pvc_dir / HEAD_REF
        self.config_path = self.pvc_dir / "config.yaml"
        self.store = ObjectStore(self.objects_dir)

    @classmethod
    def discover(cls, start_path: Path | None = None) -> Repository:
        """Open the repository containing ``start_path`` (default: cwd)."""
        return cls(require_pvc_dir(start_path).parent)

    # --- Layout ---

    def is_initialized(self) -> bool:
        """Check if the .pvc directory exists."""
        return self.pvc_dir.is_dir()

    def init(self) -> None:
        """Create the .pvc directory structure with an empty index."""
        if self.is_initialized():
            msg = f"Already initialized: {self.pvc_dir}"
            raise AlreadyInitializedError(msg)

        self.pvc_dir.mkdir(parents=True)
        self.objects_dir.mkdir()
        self.test_runs_dir.mkdir()
        self.write_index(StagingIndex())

        with self.config_path.open("w") as f:
            yaml.dump(default_config_data(), f, default_flow_style=False)

    # --- Staging index ---

    def read_index(self) -> StagingIndex:
        """Load index.json (an absent file is an empty index)."""
        try:
            return StagingIndex.model_validate_json(self.index_path.read_bytes())
        except FileNotFoundError:
            return StagingIndex()
        except PydanticValidationError as e:
            msg = f"Malformed staging index: {self.index_path}"
            raise CorruptRepositoryError(msg) from e

    def write_index(self, index: StagingIndex) -> None:
        """Replace index.json atomically."""
        atomic_write(self.index_path, index.model_dump_json(indent=2).encode("utf-8"))

    # --- HEAD ---

    def head(self) -> str | None:
        """Current HEAD commit digest, or None before the first commit."""
        try:
            value = self.head_path.read_text().strip()
        except FileNotFoundError:
            return None
        return value or None

    def _set_head(self, digest: str | None) -> None:
        if digest is None:
            self.head_path.unlink(missing_ok=True)
        else:
            atomic_write(self.head_path, digest.encode("utf-8"))

    # --- Objects ---

    def stage(self, path: str, content: str) -> str:
        """Store ``content`` as a blob and stage it under ``path``."""
        digest = hash_content(content)
        blob = Blob(content=content)
        _ = self.store.write(digest, blob.model_dump_json().encode("utf-8"))

        index = self.read_index()
        index.staged[path] = StagedFile(hash=digest, path=path)
        self.write_index(index)
        return digest

    def add(self, path: Path) -> list[str]:
        """Stage a file, or every regular file directly inside a directory.

        Returns the staged repository-relative paths.
        """
        full_path = path if path.is_absolute() else Path.cwd() / path
        full_path = full_path.resolve()
        if not full_path.exists():
            msg = f"File not found: {path}"
            raise NotFoundError(msg)

        if full_path.is_dir():
            files = sorted(p for p in full_path.iterdir() if p.is_file())
        else:
            files = [full_path]

        # Read everything first so a bad file stages nothing.
        contents: dict[str, str] = {}
        for file_path in files:
            rel_path = self._relative_path(file_path)
            try:
                contents[rel_path] = file_path.read_text(encoding="utf-8")
            except UnicodeDecodeError as e:
                msg = f"Not a UTF-8 text file: {rel_path}"
                raise ValidationError(msg) from e

        for rel_path, content in contents.items():
            _ = self.stage(rel_path, content)
        return list(contents)

    def _relative_path(self, full_path: Path) -> str:
        try:
            rel = full_path.relative_to(self.root)
        except ValueError as e:
            msg = f"Path is outside the repository: {full_path}"
            raise ValidationError(msg) from e
        if rel.parts and rel.parts[0] == PVC_DIR_NAME:
            msg = f"Cannot stage repository metadata: {rel.as_posix()}"
            raise ValidationError(msg)
        return rel.as_posix()

    def commit(self, message: str) -> str:
        """Create a commit from the staging index and advance HEAD.

        Either the commit is fully recorded (object written, HEAD advanced,
        index cleared) or HEAD and the index keep their previous values.
        """
        message = message.strip()
        if not message:
            msg = "Commit message required (-m \"message\")"
            raise ValidationError(msg)

        index = self.read_index()
        if not index.staged:
            msg = "Nothing to commit (no staged files)"
            raise NothingToCommitError(msg)

        previous_head = self.head()
        commit = Commit(
            tree={path: entry.hash for path, entry in index.staged.items()},
            parent=previous_head,
            message=message,
            timestamp=commit_timestamp(),
        )
        data = commit.serialize()
        digest = hash_bytes(data)

        # Objects are content-addressed, so an orphaned write on failure is harmless.
        _ = self.store.write(digest, data)
        self._set_head(digest)
        try:
            self.write_index(StagingIndex())
        except BaseException:
            self._set_head(previous_head)
            raise

        logger.debug("Committed %s (%d paths)", digest, len(commit.tree))
        return digest

    def get_commit(self, digest: str) -> Commit | None:
        """Return the commit for ``digest``, or None if absent or not a commit."""
        try:
            obj = parse_object(self.store.read(digest))
        except (NotFoundError, ValidationError, PydanticValidationError):
            return None
        return obj if isinstance(obj, Commit) else None

    def read_blob(self, digest: str) -> Blob:
        """Return the blob for ``digest``."""
        try:
            obj = parse_object(self.store.read(digest))
        except PydanticValidationError as e:
            msg = f"Malformed object: {digest}"
            raise CorruptRepositoryError(msg) from e
        if not isinstance(obj, Blob):
            msg = f"Object {digest} is not a blob"
            raise NotFoundError(msg)
        return obj

    # --- History ---

    def history(self, start: str | None = None) -> Iterator[tuple[str, Commit]]:
        """Yield ``(digest, commit)`` from ``start`` (default HEAD) back to the root."""
        current = start if start is not None else self.head()
        seen: set[str] = set()
        while current is not None:
            if current in seen:
                msg = f"Commit history contains a cycle at {current}"
                raise CorruptRepositoryError(msg)
            seen.add(current)

            commit = self.get_commit(current)
            if commit is None:
                msg = f"Commit not found: {current}"
                raise NotFoundError(msg)
            yield current, commit
            current = commit.parent

    def resolve(self, ref: str) -> str:
        """Resolve ``HEAD`` or a digest prefix to a full commit digest.

        Prefixes are matched against the HEAD ancestry only, nearest first.
        """
        ref = ref.strip()
        if ref == HEAD_REF:
            head = self.head()
            if head is None:
                msg = "No commits yet"
                raise NotFoundError(msg)
            return head

        if ref:
            for digest, _commit in self.history():
                if digest.startswith(ref.lower()):
                    return digest

        msg = f"Commit not found: {ref}"
        raise NotFoundError(msg)

    def load_prompt(self, digest: str, path: str | None = None) -> str:
        """Return prompt text from a commit.

        Uses ``path`` when given, otherwise the first entry of the commit tree.
        """
        commit = self.get_commit(digest)
        if commit is None:
            msg = f"Commit not found: {digest}"
            raise NotFoundError(msg)

        if path is not None:
            blob_digest = commit.tree.get(path)
            if blob_digest is None:
                msg = f"Path '{path}' not found in commit {short_hash(digest)}"
                raise NotFoundError(msg)
            return self.read_blob(blob_digest).content

        for blob_digest in commit.tree.values():
            return self.read_blob(blob_digest).content

        msg = f"No prompt found in commit {short_hash(digest)}"
        raise NotFoundError(msg)

    def tree_contents(self, tree: dict[str, str]) -> dict[str, str]:
        """Map each path of a commit tree to its blob content."""
        return {path: self.read_blob(digest).content for path, digest in tree.items()}

    def working_tree(self, paths: Iterable[str]) -> dict[str, str]:
        """Read working copies of repository-relative ``paths`` that exist on disk."""
        contents: dict[str, str] = {}
        for path in paths:
            file_path = self.root / path
            if not file_path.is_file():
                continue
            try:
                contents[path] = file_path.read_text(encoding="utf-8")
            except UnicodeDecodeError as e:
                msg = f"Not a UTF-8 text file: {path}"
                raise ValidationError(msg) from e
        return contents
