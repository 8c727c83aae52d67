# Copyright (c) Syntropy Systems
"""Pydantic models for combinations, attempt results and comparisons."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import Field, computed_field

from .api import Capabilities, RemoteJob
from .base import FrozenModel, QuorumBaseModel


class TestCombination(FrozenModel):
    """The logical unit under test: job kind x variant x work item."""

    __test__ = False  # not a pytest class

    job_kind: str = Field(alias="jobKind")
    variant: str
    work_item: str = Field(alias="workItem")

    def label(self) -> str:
        """Return a short human-readable label."""
        return f"{self.work_item} / {self.job_kind} / {self.variant}"


class RowResult(QuorumBaseModel):
    """Response values reported for a single row."""

    row_id: int = Field(alias="rowId")
    response_values: list[str] = Field(default_factory=list, alias="responseValues")


class RunResult(QuorumBaseModel):
    """Finalized output of one attempt.

    Rows are kept in arrival order. A row id may repeat; the last entry for
    a given row id is the one that counts.
    """

    rows: list[RowResult] = Field(default_factory=list)
    log_url: str | None = Field(default=None, alias="logUrl")
    capabilities: Capabilities | None = None

    def latest_values(self) -> dict[int, list[str]]:
        """Map each row id to its last reported response values."""
        latest: dict[int, list[str]] = {}
        for row in self.rows:
            latest[row.row_id] = row.response_values
        return latest


class Divergence(QuorumBaseModel):
    """An attempt whose value for a row differs from the baseline."""

    attempt_index: int = Field(alias="attemptIndex")
    response_values: list[str] = Field(alias="responseValues")


class RowComparison(QuorumBaseModel):
    """Baseline and divergences for a single row."""

    row_id: int = Field(alias="rowId")
    baseline: list[str]
    divergences: list[Divergence] = Field(default_factory=list)


class ComparisonResult(QuorumBaseModel):
    """Consensus over every attempt of one combination."""

    rows: list[RowComparison] = Field(default_factory=list)
    total_rows: int = Field(default=0, alias="totalRows")
    equal_rows: int = Field(default=0, alias="equalRows")

    @computed_field(alias="unequalRows")  # type: ignore[prop-decorator]
    @property
    def unequal_rows(self) -> int:
        """Number of (row x attempt) pairs that diverged from the baseline."""
        return self.total_rows - self.equal_rows

    def divergent_row_ids(self) -> list[int]:
        """Return the ids of rows with at least one divergence."""
        return [row.row_id for row in self.rows if row.divergences]


class AttemptRecord(QuorumBaseModel):
    """Per-attempt metadata kept for reporting."""

    attempt_index: int = Field(alias="attemptIndex")
    correlation_key: str = Field(alias="correlationKey")
    log_url: str | None = Field(default=None, alias="logUrl")
    capabilities: Capabilities | None = None
    row_count: int = Field(default=0, alias="rowCount")
    failed: bool = False
    error_message: str | None = Field(default=None, alias="errorMessage")


class CombinationReport(QuorumBaseModel):
    """Comparison record for one combination."""

    combination: TestCombination
    comparison: ComparisonResult
    attempts: list[AttemptRecord] = Field(default_factory=list)

    @property
    def failed_attempts(self) -> list[AttemptRecord]:
        """Attempts that never produced a result."""
        return [a for a in self.attempts if a.failed]


def utcnow() -> datetime:
    """Return the current UTC time."""
    return datetime.now(timezone.utc)


class RunReport(QuorumBaseModel):
    """Everything a single invocation produced; the snapshot file payload."""

    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    reports: list[CombinationReport] = Field(default_factory=list)
    retried_jobs: list[RemoteJob] = Field(default_factory=list, alias="retriedJobs")

    def get(self, combination: TestCombination) -> CombinationReport | None:
        """Return the report for a combination, if present."""
        for report in self.reports:
            if report.combination == combination:
                return report
        return None
