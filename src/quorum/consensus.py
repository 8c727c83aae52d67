# Copyright (c) Syntropy Systems
"""Reduce redundant attempts of one combination to a baseline plus divergences."""

from __future__ import annotations

from typing import TYPE_CHECKING

from quorum.models.results import ComparisonResult, Divergence, RowComparison

if TYPE_CHECKING:
    from collections.abc import Iterable

    from quorum.models.results import RunResult

ValueKey = tuple[str, ...]


def canonical(values: Iterable[str]) -> ValueKey:
    """Hashable form of an ordered response list; equal lists give equal keys."""
    return tuple(values)


def mode(candidates: Iterable[ValueKey]) -> ValueKey | None:
    """Return the most frequent value, ties going to the first one seen."""
    counts: dict[ValueKey, int] = {}
    for candidate in candidates:
        counts[candidate] = counts.get(candidate, 0) + 1

    best: ValueKey | None = None
    best_count = 0
    # dicts keep insertion order, so strict > keeps the earliest on ties
    for candidate, count in counts.items():
        if count > best_count:
            best, best_count = candidate, count
    return best


def compute_consensus(attempts: Iterable[tuple[int, RunResult]]) -> ComparisonResult:
    """Compute the per-row baseline and every attempt's divergence from it.

    Args:
        attempts: (attempt index, result) pairs in attempt order. Attempts
            that failed to produce a result are simply absent.

    Returns:
        A ComparisonResult. Zero attempts, or attempts without rows, give an
        empty result with zero totals.

    """
    per_attempt: list[tuple[int, dict[int, list[str]]]] = [
        (index, result.latest_values()) for index, result in attempts
    ]

    # Row ids in first-seen order across attempts
    grouped: dict[int, list[ValueKey]] = {}
    for _, latest in per_attempt:
        for row_id, values in latest.items():
            grouped.setdefault(row_id, []).append(canonical(values))

    rows: list[RowComparison] = []
    total_rows = 0
    equal_rows = 0

    for row_id, candidates in grouped.items():
        baseline = mode(candidates)
        if baseline is None:
            continue

        divergences: list[Divergence] = []
        for attempt_index, latest in per_attempt:
            values = latest.get(row_id, [])
            total_rows += 1
            if canonical(values) == baseline:
                equal_rows += 1
            else:
                divergences.append(
                    Divergence(attempt_index=attempt_index, response_values=list(values))
                )

        rows.append(
            RowComparison(row_id=row_id, baseline=list(baseline), divergences=divergences)
        )

    return ComparisonResult(rows=rows, total_rows=total_rows, equal_rows=equal_rows)
