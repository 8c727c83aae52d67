# Copyright (c) Syntropy Systems
"""Shared test doubles and builders."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from quorum.errors import LauncherError
from quorum.listener import CallbackListener
from quorum.models.api import CallbackPayload, CallbackStatus, LaunchRequest, RemoteJob
from quorum.models.results import RowResult, RunResult


class FakeLauncher:
    """In-memory stand-in for the remote job API.

    ``on_launch`` runs inside ``launch`` after the request is recorded.
    ``failed_responses`` is consumed one entry per ``list_failed_jobs`` call;
    the last entry repeats once the list is exhausted.
    """

    def __init__(self) -> None:
        self.launched: list[LaunchRequest] = []
        self.reject: set[str] = set()
        self.on_launch: Callable[[LaunchRequest], Awaitable[None]] | None = None
        self.failed_responses: list[list[RemoteJob]] = [[]]
        self.list_calls = 0
        self.list_error: LauncherError | None = None
        self.reruns: list[RemoteJob] = []
        self.rerun_error: LauncherError | None = None
        self.events: list[str] = []

    async def launch(self, request: LaunchRequest) -> None:
        self.launched.append(request)
        self.events.append(f"launch:{request.correlation_key}")
        if request.correlation_key in self.reject:
            msg = f"rejected {request.correlation_key}"
            raise LauncherError(msg)
        if self.on_launch is not None:
            await self.on_launch(request)

    async def list_failed_jobs(self, job_kinds: list[str]) -> list[RemoteJob]:
        self.list_calls += 1
        self.events.append("list_failed")
        if self.list_error is not None:
            raise self.list_error
        if len(self.failed_responses) > 1:
            return self.failed_responses.pop(0)
        return self.failed_responses[0]

    async def rerun(self, job: RemoteJob) -> None:
        if self.rerun_error is not None:
            raise self.rerun_error
        self.reruns.append(job)


def payload(
    status: str,
    row_id: int | None = None,
    values: list[str] | None = None,
    **extra: object,
) -> CallbackPayload:
    """Build a callback payload from wire-format fields."""
    body: dict[str, object] = {"status": status, **extra}
    if row_id is not None:
        body["rowId"] = row_id
        body["responseValues"] = values or []
    return CallbackPayload.model_validate(body)


def replay(
    listener: CallbackListener,
    rows_by_attempt: dict[int, dict[int, list[str]]],
    delay: float = 0.0,
) -> Callable[[LaunchRequest], Awaitable[None]]:
    """Make an on_launch hook that answers each launch with scripted callbacks.

    Callbacks are sent from a separate task, after ``delay`` seconds, the
    way a remote job would call back some time after being launched.
    """
    tasks: set[asyncio.Task[None]] = set()

    async def send(request: LaunchRequest) -> None:
        if delay:
            await asyncio.sleep(delay)
        attempt_index = int(request.correlation_key.rsplit("-", 1)[1])
        key = request.correlation_key
        for row_id, values in rows_by_attempt.get(attempt_index, {}).items():
            _ = await listener.handle_event(
                key, payload(CallbackStatus.RUNNING_PARTIAL.value, row_id, values)
            )
        _ = await listener.handle_event(
            key, payload("COMPLETED", logUrl=f"https://ci.example/{key}")
        )

    async def on_launch(request: LaunchRequest) -> None:
        task = asyncio.create_task(send(request))
        tasks.add(task)
        task.add_done_callback(tasks.discard)

    return on_launch


def run_result(rows: dict[int, list[str]]) -> RunResult:
    """Build a RunResult from a row id -> values mapping."""
    return RunResult(rows=[RowResult(row_id=k, response_values=v) for k, v in rows.items()])
