# Copyright (c) Syntropy Systems
"""Shared Pydantic model helpers for promptvc."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PvcBaseModel(BaseModel):
    """Base model with shared config for promptvc schemas."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
    )


class RecordModel(BaseModel):
    """Immutable record persisted with camelCase keys."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
        frozen=True,
    )
