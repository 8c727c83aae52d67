# Copyright (c) Syntropy Systems
"""Tests for the GitHub Actions launcher."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from quorum.errors import LauncherError
from quorum.launcher import GitHubActionsLauncher
from quorum.models.api import LaunchRequest, RemoteJob

REQUEST = LaunchRequest(
    job_kind="nvda.yml",
    variant="chrome",
    work_item="plan1",
    callback_url="https://tunnel.example/callback",
    callback_header="x-quorum-correlation-key",
    correlation_key="plan1-nvda.yml-chrome-0",
)


class Recorder:
    """Mock transport handler that records requests and returns a canned response."""

    def __init__(self, response: httpx.Response | Exception) -> None:
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def _launcher(recorder: Recorder) -> GitHubActionsLauncher:
    return GitHubActionsLauncher(
        "owner/tests", "secret-token", ref="release", transport=httpx.MockTransport(recorder)
    )


class TestLaunch:
    """Tests for workflow dispatch."""

    def test_dispatch_request(self) -> None:
        """Launch posts a workflow dispatch carrying the attempt inputs."""
        recorder = Recorder(httpx.Response(204))

        async def scenario() -> None:
            async with _launcher(recorder) as launcher:
                await launcher.launch(REQUEST)

        asyncio.run(scenario())

        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/repos/owner/tests/actions/workflows/nvda.yml/dispatches"
        assert request.headers["Authorization"] == "Bearer secret-token"
        body = json.loads(request.content)
        assert body["ref"] == "release"
        assert body["inputs"] == {
            "work_item": "plan1",
            "variant": "chrome",
            "callback_url": "https://tunnel.example/callback",
            "callback_header": "x-quorum-correlation-key",
            "correlation_key": "plan1-nvda.yml-chrome-0",
        }

    def test_rejection_raises_with_api_message(self) -> None:
        """An error status becomes LauncherError carrying GitHub's message."""
        recorder = Recorder(httpx.Response(422, json={"message": "Unexpected inputs provided"}))

        async def scenario() -> None:
            async with _launcher(recorder) as launcher:
                await launcher.launch(REQUEST)

        with pytest.raises(LauncherError, match="422.*Unexpected inputs provided"):
            asyncio.run(scenario())

    def test_error_without_json_body(self) -> None:
        """A non-JSON error body still produces a LauncherError."""
        recorder = Recorder(httpx.Response(502, text="Bad gateway"))

        async def scenario() -> None:
            async with _launcher(recorder) as launcher:
                await launcher.launch(REQUEST)

        with pytest.raises(LauncherError, match="502"):
            asyncio.run(scenario())

    def test_connection_error(self) -> None:
        """Transport failures are reported as LauncherError."""
        recorder = Recorder(httpx.ConnectError("refused"))

        async def scenario() -> None:
            async with _launcher(recorder) as launcher:
                await launcher.launch(REQUEST)

        with pytest.raises(LauncherError, match="Connection error"):
            asyncio.run(scenario())


class TestFailedJobs:
    """Tests for listing and re-running failed jobs."""

    def test_list_failed_jobs(self) -> None:
        """Failed runs of every job kind are returned."""
        recorder = Recorder(
            httpx.Response(
                200,
                json={
                    "total_count": 1,
                    "workflow_runs": [
                        {
                            "id": 42,
                            "status": "completed",
                            "conclusion": "failure",
                            "html_url": "https://github.com/owner/tests/actions/runs/42",
                        }
                    ],
                },
            )
        )

        async def scenario() -> list[RemoteJob]:
            async with _launcher(recorder) as launcher:
                return await launcher.list_failed_jobs(["a.yml", "b.yml"])

        jobs = asyncio.run(scenario())

        assert [(job.id, job.job_kind) for job in jobs] == [(42, "a.yml"), (42, "b.yml")]
        assert jobs[0].conclusion == "failure"
        assert jobs[0].html_url == "https://github.com/owner/tests/actions/runs/42"
        first = recorder.requests[0]
        assert first.url.path == "/repos/owner/tests/actions/workflows/a.yml/runs"
        assert first.url.params["status"] == "failure"

    def test_list_failed_jobs_reads_every_page(self) -> None:
        """Listings longer than one page are followed to the end."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            page = int(request.url.params["page"])
            start = (page - 1) * 100
            ids = range(start, min(start + 100, 101))
            runs = [{"id": i, "conclusion": "failure"} for i in ids]
            return httpx.Response(200, json={"total_count": 101, "workflow_runs": runs})

        async def scenario() -> list[RemoteJob]:
            launcher = GitHubActionsLauncher(
                "owner/tests", "secret-token", transport=httpx.MockTransport(handler)
            )
            async with launcher:
                return await launcher.list_failed_jobs(["a.yml"])

        jobs = asyncio.run(scenario())

        assert [job.id for job in jobs] == list(range(101))
        assert [r.url.params["page"] for r in requests] == ["1", "2"]
        assert requests[0].url.params["per_page"] == "100"

    def test_unexpected_listing(self) -> None:
        """A listing that does not parse is a LauncherError."""
        recorder = Recorder(httpx.Response(200, json={"workflow_runs": [{"status": "x"}]}))

        async def scenario() -> list[RemoteJob]:
            async with _launcher(recorder) as launcher:
                return await launcher.list_failed_jobs(["a.yml"])

        with pytest.raises(LauncherError, match="a.yml"):
            _ = asyncio.run(scenario())

    def test_rerun(self) -> None:
        """Re-run posts to the run's rerun endpoint."""
        recorder = Recorder(httpx.Response(201))

        async def scenario() -> None:
            async with _launcher(recorder) as launcher:
                await launcher.rerun(RemoteJob(id=42, job_kind="a.yml"))

        asyncio.run(scenario())

        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/repos/owner/tests/actions/runs/42/rerun"
