# Copyright (c) Syntropy Systems
"""Launching and inspecting remote jobs."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import httpx
from pydantic import BaseModel, Field, ValidationError
from typing_extensions import Self

from quorum.errors import LauncherError
from quorum.models.api import RemoteJob

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from types import TracebackType

    from quorum.models.api import LaunchRequest

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"

# Largest page size the workflow runs listing accepts
RUNS_PER_PAGE = 100


class JobLauncher(Protocol):
    """Capability for starting remote jobs and inspecting their state."""

    async def launch(self, request: LaunchRequest) -> None:
        """Request a remote job; raise LauncherError if rejected."""
        ...

    async def list_failed_jobs(self, job_kinds: Sequence[str]) -> list[RemoteJob]:
        """List every failed remote job of the given kinds."""
        ...

    async def rerun(self, job: RemoteJob) -> None:
        """Re-run an existing remote job by identity."""
        ...


class _GitHubError(BaseModel):
    message: str


class _WorkflowRun(BaseModel):
    id: int
    status: str | None = None
    conclusion: str | None = None
    html_url: str | None = None


class _WorkflowRunList(BaseModel):
    total_count: int = 0
    workflow_runs: list[_WorkflowRun] = Field(default_factory=list)


class GitHubActionsLauncher:
    """Launch jobs as GitHub Actions workflow dispatches.

    Each job kind is a workflow file in ``repository``; the variant, work
    item, callback URL and correlation key are passed as workflow inputs.
    """

    repository: str
    ref: str
    _client: httpx.AsyncClient

    def __init__(
        self,
        repository: str,
        token: str,
        ref: str = "main",
        api_url: str = GITHUB_API_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the launcher.

        Args:
            repository: ``owner/name`` of the repository hosting the workflows
            token: API token with permission to dispatch and re-run workflows
            ref: Git ref the workflows are dispatched on
            api_url: Base URL of the GitHub REST API
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)

        """
        self.repository = repository
        self.ref = ref
        self._client = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {token}",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        """Enter the launcher context and return self."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the launcher context and close the HTTP client."""
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        json: Mapping[str, object] | None = None,
        params: Mapping[str, str | int] | None = None,
    ) -> httpx.Response:
        """Make an HTTP request to the API."""
        try:
            response = await self._client.request(method, path, json=json, params=params)
            _ = response.raise_for_status()
        except httpx.HTTPStatusError as e:
            # GitHub error bodies carry a "message" field
            try:
                detail = _GitHubError.model_validate(e.response.json()).message
            except (ValidationError, ValueError):
                detail = str(e)
            msg = f"GitHub API error ({e.response.status_code}): {detail}"
            raise LauncherError(msg) from e
        except httpx.RequestError as e:
            msg = f"Connection error: {e}"
            raise LauncherError(msg) from e
        return response

    def _repo_path(self, suffix: str) -> str:
        return f"/repos/{self.repository}/actions{suffix}"

    async def launch(self, request: LaunchRequest) -> None:
        """Dispatch the workflow for one attempt.

        Args:
            request: Launch parameters for the attempt

        Raises:
            LauncherError: If the dispatch was rejected

        """
        logger.debug("Dispatching %s for %s", request.job_kind, request.correlation_key)
        _ = await self._request(
            "POST",
            self._repo_path(f"/workflows/{request.job_kind}/dispatches"),
            json={
                "ref": self.ref,
                "inputs": {
                    "work_item": request.work_item,
                    "variant": request.variant,
                    "callback_url": request.callback_url,
                    "callback_header": request.callback_header,
                    "correlation_key": request.correlation_key,
                },
            },
        )

    async def list_failed_jobs(self, job_kinds: Sequence[str]) -> list[RemoteJob]:
        """List failed workflow runs for each job kind.

        Pages through the listing until ``total_count`` runs are read or a
        page comes back short.

        Args:
            job_kinds: Workflow file names to inspect

        Returns:
            Failed runs across all given workflows

        """
        failed: list[RemoteJob] = []
        for job_kind in job_kinds:
            seen = 0
            page = 1
            while True:
                runs = await self._list_failed_page(job_kind, page)
                failed.extend(
                    RemoteJob(
                        id=run.id,
                        job_kind=job_kind,
                        status=run.status or "completed",
                        conclusion=run.conclusion,
                        html_url=run.html_url,
                    )
                    for run in runs.workflow_runs
                )
                seen += len(runs.workflow_runs)
                if len(runs.workflow_runs) < RUNS_PER_PAGE or seen >= runs.total_count:
                    break
                page += 1
        return failed

    async def _list_failed_page(self, job_kind: str, page: int) -> _WorkflowRunList:
        response = await self._request(
            "GET",
            self._repo_path(f"/workflows/{job_kind}/runs"),
            params={"status": "failure", "per_page": RUNS_PER_PAGE, "page": page},
        )
        try:
            return _WorkflowRunList.model_validate(response.json())
        except (ValidationError, ValueError) as e:
            msg = f"Unexpected workflow run listing for {job_kind}: {e}"
            raise LauncherError(msg) from e

    async def rerun(self, job: RemoteJob) -> None:
        """Re-run a workflow run.

        Args:
            job: The failed run to re-run

        """
        _ = await self._request("POST", self._repo_path(f"/runs/{job.id}/rerun"))
