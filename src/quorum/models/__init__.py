# Copyright (c) Syntropy Systems
"""Pydantic models for quorum."""

from .api import (
    CallbackAck,
    CallbackPayload,
    CallbackStatus,
    Capabilities,
    HealthResponse,
    LaunchRequest,
    RemoteJob,
)
from .results import (
    AttemptRecord,
    CombinationReport,
    ComparisonResult,
    Divergence,
    RowComparison,
    RowResult,
    RunReport,
    RunResult,
    TestCombination,
)

__all__ = [
    "AttemptRecord",
    "CallbackAck",
    "CallbackPayload",
    "CallbackStatus",
    "Capabilities",
    "CombinationReport",
    "ComparisonResult",
    "Divergence",
    "HealthResponse",
    "LaunchRequest",
    "RemoteJob",
    "RowComparison",
    "RowResult",
    "RunReport",
    "RunResult",
    "TestCombination",
]
