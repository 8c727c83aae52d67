# Copyright (c) Syntropy Systems
"""Run every attempt of every combination and assemble the comparison records."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from quorum.consensus import compute_consensus
from quorum.correlation import make_key
from quorum.errors import AttemptDispatchFailed, DuplicateCorrelationKey
from quorum.models.results import AttemptRecord, CombinationReport, RunReport

if TYPE_CHECKING:
    from collections.abc import Iterable

    from quorum.dispatcher import Dispatcher
    from quorum.models.results import RunResult, TestCombination
    from quorum.monitor import RetryMonitor

logger = logging.getLogger(__name__)

DEFAULT_RUNS_PER_COMBINATION = 5


class ResultAggregator:
    """Orchestrates dispatch, callback collection and consensus per combination."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        runs_per_combination: int = DEFAULT_RUNS_PER_COMBINATION,
        monitor: RetryMonitor | None = None,
    ) -> None:
        if runs_per_combination < 1:
            msg = f"runs_per_combination must be at least 1, got {runs_per_combination}"
            raise ValueError(msg)
        self.dispatcher = dispatcher
        self.runs_per_combination = runs_per_combination
        self.monitor = monitor

    async def _attempt(
        self, combination: TestCombination, attempt_index: int
    ) -> tuple[AttemptRecord, RunResult | None]:
        key = make_key(combination, attempt_index)
        try:
            result = await self.dispatcher.dispatch_and_await(combination, attempt_index)
        except AttemptDispatchFailed as e:
            return self._failed(key, attempt_index, e.reason), None
        except DuplicateCorrelationKey:
            raise
        except Exception as e:
            logger.exception(
                "Attempt %d of %s failed unexpectedly", attempt_index, combination.label()
            )
            return self._failed(key, attempt_index, f"{type(e).__name__}: {e}"), None

        record = AttemptRecord(
            attempt_index=attempt_index,
            correlation_key=key,
            log_url=result.log_url,
            capabilities=result.capabilities,
            row_count=len(result.latest_values()),
        )
        return record, result

    @staticmethod
    def _failed(key: str, attempt_index: int, reason: str) -> AttemptRecord:
        return AttemptRecord(
            attempt_index=attempt_index,
            correlation_key=key,
            failed=True,
            error_message=reason,
        )

    async def collect(self, combination: TestCombination) -> CombinationReport:
        """Run every attempt of one combination and compute its consensus."""
        # Tasks are created in attempt order so slots are requested in that order
        tasks = [
            asyncio.create_task(self._attempt(combination, index))
            for index in range(self.runs_per_combination)
        ]
        outcomes = await asyncio.gather(*tasks)

        records = [record for record, _ in outcomes]
        results = [
            (record.attempt_index, result) for record, result in outcomes if result is not None
        ]
        if not results:
            logger.warning("No attempt of %s produced a result", combination.label())

        comparison = compute_consensus(results)
        logger.info(
            "%s: %d/%d rows agree with baseline",
            combination.label(),
            comparison.equal_rows,
            comparison.total_rows,
        )
        return CombinationReport(combination=combination, comparison=comparison, attempts=records)

    async def run(self, combinations: Iterable[TestCombination]) -> RunReport:
        """Process all combinations with the retry monitor running alongside.

        The monitor's snapshot of pre-existing failures is taken before any
        dispatch begins. Reports come back in declaration order.
        """
        combinations = list(combinations)
        if self.monitor is not None:
            _ = await self.monitor.take_snapshot()
            _ = self.monitor.start()

        try:
            reports = await asyncio.gather(*(self.collect(c) for c in combinations))
        finally:
            if self.monitor is not None:
                await self.monitor.stop()

        retried = self.monitor.drain() if self.monitor is not None else []
        return RunReport(reports=list(reports), retried_jobs=retried)
