# Copyright (c) Syntropy Systems
"""Correlation keys binding an attempt to the callbacks it receives."""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING

from quorum.models.results import TestCombination

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


def make_key(combination: TestCombination, attempt_index: int) -> str:
    """Build the correlation key for one attempt of a combination."""
    return (
        f"{combination.work_item}-{combination.job_kind}-"
        f"{combination.variant}-{attempt_index}"
    )


def enumerate_combinations(
    job_kinds: Iterable[str],
    variants: Iterable[str],
    work_items: Iterable[str],
) -> Iterator[TestCombination]:
    """Yield combinations in declaration order, work item major."""
    for work_item, job_kind, variant in itertools.product(work_items, job_kinds, variants):
        yield TestCombination(job_kind=job_kind, variant=variant, work_item=work_item)
