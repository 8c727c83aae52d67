# Copyright (c) Syntropy Systems
"""Background re-run of remote jobs that failed without calling back."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from quorum.errors import LauncherError, SetupError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from quorum.launcher import JobLauncher
    from quorum.models.api import RemoteJob

logger = logging.getLogger(__name__)

DEFAULT_RETRY_INTERVAL = 60.0


class RetryMonitor:
    """Poll the remote system for failed jobs and re-run new ones.

    Works purely in terms of remote job identities. Jobs already failed when
    the snapshot is taken are never touched, and each newly failed job is
    re-run at most once. Every re-run is published on ``events``.
    """

    def __init__(
        self,
        launcher: JobLauncher,
        job_kinds: Sequence[str],
        interval: float = DEFAULT_RETRY_INTERVAL,
        events: asyncio.Queue[RemoteJob] | None = None,
    ) -> None:
        self.launcher = launcher
        self.job_kinds = list(job_kinds)
        self.interval = interval
        self.events: asyncio.Queue[RemoteJob] = events if events is not None else asyncio.Queue()
        self.known_failures: set[int] = set()
        self._task: asyncio.Task[None] | None = None

    async def take_snapshot(self) -> set[int]:
        """Record every job already failed before dispatch begins.

        Raises:
            SetupError: If the remote system cannot be queried.

        """
        try:
            failed = await self.launcher.list_failed_jobs(self.job_kinds)
        except LauncherError as e:
            msg = f"Could not list pre-existing failed jobs: {e}"
            raise SetupError(msg) from e
        self.known_failures = {job.id for job in failed}
        logger.info("Ignoring %d pre-existing failed job(s)", len(self.known_failures))
        return set(self.known_failures)

    async def poll_once(self) -> list[RemoteJob]:
        """Re-run every failed job not seen before.

        Returns:
            The jobs a re-run was requested for.

        """
        try:
            failed = await self.launcher.list_failed_jobs(self.job_kinds)
        except LauncherError:
            logger.exception("Failed to query remote job status")
            return []

        rerun: list[RemoteJob] = []
        for job in failed:
            if job.id in self.known_failures:
                continue
            logger.warning(
                "Remote job %d (%s) failed, re-running: %s",
                job.id,
                job.job_kind,
                job.html_url or "-",
            )
            try:
                await self.launcher.rerun(job)
            except LauncherError:
                # Left unknown so the next tick tries again
                logger.exception("Failed to re-run remote job %d", job.id)
                continue
            self.known_failures.add(job.id)
            rerun.append(job)
            self.events.put_nowait(job)
        return rerun

    async def run(self) -> None:
        """Poll on a fixed interval until cancelled."""
        while True:
            await asyncio.sleep(self.interval)
            try:
                _ = await self.poll_once()
            except Exception:
                logger.exception("Retry monitor poll failed")

    def start(self) -> asyncio.Task[None]:
        """Start the polling loop as a background task."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        """Cancel the polling loop and wait for it to finish."""
        if self._task is None:
            return
        _ = self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    def drain(self) -> list[RemoteJob]:
        """Return every re-run event published so far."""
        jobs: list[RemoteJob] = []
        while not self.events.empty():
            jobs.append(self.events.get_nowait())
        return jobs
