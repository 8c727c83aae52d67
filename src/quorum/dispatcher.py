# Copyright (c) Syntropy Systems
"""Bounded-concurrency dispatch of remote attempts."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from quorum.correlation import make_key
from quorum.errors import AttemptDispatchFailed, LauncherError
from quorum.models.api import LaunchRequest

if TYPE_CHECKING:
    from quorum.launcher import JobLauncher
    from quorum.listener import CallbackListener
    from quorum.models.results import RunResult, TestCombination

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 8


class Dispatcher:
    """Launch one remote job per attempt without exceeding a concurrency ceiling.

    A slot is held from just before registration until the attempt's outcome
    is known, and released exactly once on every exit path.
    """

    def __init__(
        self,
        launcher: JobLauncher,
        listener: CallbackListener,
        callback_url: str,
        callback_header: str,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        if concurrency < 1:
            msg = f"concurrency must be at least 1, got {concurrency}"
            raise ValueError(msg)
        self.launcher = launcher
        self.listener = listener
        self.callback_url = callback_url
        self.callback_header = callback_header
        self.concurrency = concurrency
        self._slots = asyncio.Semaphore(concurrency)
        self.in_flight = 0
        self.peak_in_flight = 0

    async def dispatch_and_await(self, combination: TestCombination, attempt_index: int) -> RunResult:
        """Launch one attempt and wait for its terminal callback.

        Raises:
            AttemptDispatchFailed: If the launch request was rejected.

        """
        key = make_key(combination, attempt_index)
        async with self._slots:
            handle = self.listener.register(key)
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            try:
                logger.info("Dispatching %s attempt %d", combination.label(), attempt_index)
                try:
                    await self.launcher.launch(
                        LaunchRequest(
                            job_kind=combination.job_kind,
                            variant=combination.variant,
                            work_item=combination.work_item,
                            callback_url=self.callback_url,
                            callback_header=self.callback_header,
                            correlation_key=key,
                        )
                    )
                except LauncherError as e:
                    logger.error(
                        "Dispatch failed for %s attempt %d: %s",
                        combination.label(),
                        attempt_index,
                        e,
                    )
                    raise AttemptDispatchFailed(combination, attempt_index, str(e)) from e
                return await handle
            finally:
                self.in_flight -= 1
                # no-op once resolved; clears the entry on failure or cancellation
                self.listener.deregister(key)
