# Copyright (c) Syntropy Systems
"""Pydantic models for the callback wire format and the remote job API."""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from .base import QuorumBaseModel


class CallbackStatus(str, Enum):
    """Status carried by an inbound callback."""

    RUNNING_PARTIAL = "RUNNING_PARTIAL"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


class Capabilities(QuorumBaseModel):
    """Environment capability descriptor reported by a remote job."""

    at_name: str | None = Field(default=None, alias="atName")
    at_version: str | None = Field(default=None, alias="atVersion")
    browser_name: str | None = Field(default=None, alias="browserName")
    browser_version: str | None = Field(default=None, alias="browserVersion")
    platform_name: str | None = Field(default=None, alias="platformName")


class CallbackPayload(QuorumBaseModel):
    """Body of a callback posted by a remote job."""

    status: CallbackStatus
    row_id: int | None = Field(default=None, alias="rowId")
    response_values: list[str] | None = Field(default=None, alias="responseValues")
    log_url: str | None = Field(default=None, alias="logUrl")
    capabilities: Capabilities | None = None

    @property
    def has_row(self) -> bool:
        """Whether this payload carries row data."""
        return self.row_id is not None


class CallbackAck(QuorumBaseModel):
    """Response to a callback."""

    matched: bool
    message: str = ""


class LaunchRequest(QuorumBaseModel):
    """Parameters handed to the job launcher for a single attempt."""

    job_kind: str
    variant: str
    work_item: str
    callback_url: str
    callback_header: str
    correlation_key: str


class RemoteJob(QuorumBaseModel):
    """A job as known to the remote CI system."""

    id: int
    job_kind: str = Field(alias="jobKind")
    status: str = "completed"
    conclusion: str | None = None
    html_url: str | None = Field(default=None, alias="htmlUrl")


class HealthResponse(QuorumBaseModel):
    """Health check response."""

    status: str
    pending: int = 0
