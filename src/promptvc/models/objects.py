# Copyright (c) Syntropy Systems
"""Pydantic models for repository objects and the staging index."""

from __future__ import annotations

from typing import Annotated, ClassVar, Literal, Optional, Union

from pydantic import ConfigDict, Field, TypeAdapter

from .base import PvcBaseModel


class Blob(PvcBaseModel):
    """Stored prompt content. Identity is the digest of ``content``."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="ignore", frozen=True)

    type: Literal["blob"] = "blob"
    content: str


class Commit(PvcBaseModel):
    """Snapshot of staged paths plus lineage.

    Identity is the digest of the compact JSON serialization, so field order
    here is part of the on-disk format.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="ignore", frozen=True)

    type: Literal["commit"] = "commit"
    tree: dict[str, str] = Field(default_factory=dict)
    parent: Optional[str] = None
    message: str
    timestamp: str

    def serialize(self) -> bytes:
        """Return the canonical bytes the commit digest is computed over."""
        return self.model_dump_json().encode("utf-8")


StoredObject = Annotated[Union[Blob, Commit], Field(discriminator="type")]

_OBJECT_ADAPTER: TypeAdapter[Union[Blob, Commit]] = TypeAdapter(StoredObject)


def parse_object(data: bytes) -> Blob | Commit:
    """Decode a stored object, dispatching on its ``type`` field."""
    return _OBJECT_ADAPTER.validate_json(data)


class StagedFile(PvcBaseModel):
    """Staging entry for one path."""

    hash: str
    path: str


class StagingIndex(PvcBaseModel):
    """Contents of index.json."""

    staged: dict[str, StagedFile] = Field(default_factory=dict)
