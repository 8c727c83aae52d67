# Copyright (c) Syntropy Systems
"""Exception types raised by quorum."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quorum.models.results import TestCombination


class QuorumError(Exception):
    """Base class for quorum errors."""


class LauncherError(QuorumError):
    """Error from the remote job API."""


class AttemptDispatchFailed(QuorumError):
    """The remote launch for an attempt was rejected."""

    combination: TestCombination
    attempt_index: int

    def __init__(self, combination: TestCombination, attempt_index: int, reason: str) -> None:
        self.combination = combination
        self.attempt_index = attempt_index
        self.reason = reason
        super().__init__(
            f"Dispatch failed for {combination.label()} attempt {attempt_index}: {reason}"
        )


class DuplicateCorrelationKey(QuorumError):
    """A correlation key was registered while already pending."""


class MalformedCallback(QuorumError):
    """A callback payload could not be parsed."""


class SetupError(QuorumError):
    """Unrecoverable failure before any dispatch work started."""


class SnapshotError(QuorumError):
    """A snapshot file could not be read."""
