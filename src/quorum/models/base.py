# Copyright (c) Syntropy Systems
"""Shared Pydantic model helpers for quorum."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict


class QuorumBaseModel(BaseModel):
    """Base model with shared config for quorum schemas."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
    )


class FrozenModel(BaseModel):
    """Immutable, hashable base model for identity-bearing records."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )
