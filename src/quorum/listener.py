# Copyright (c) Syntropy Systems
"""Demultiplex inbound callbacks to the attempts waiting for them."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from quorum.errors import DuplicateCorrelationKey
from quorum.models.api import CallbackStatus
from quorum.models.results import RowResult, RunResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from quorum.models.api import CallbackPayload

logger = logging.getLogger(__name__)

DEFAULT_RESOLVED_HISTORY = 4096


@dataclass
class PendingAttempt:
    """An attempt awaiting its remote outcome."""

    key: str
    future: asyncio.Future[RunResult]
    rows: list[RowResult] = field(default_factory=list)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    errors: int = 0


class CallbackHandle:
    """Awaitable handle returned by CallbackListener.register."""

    def __init__(self, pending: PendingAttempt) -> None:
        self._pending = pending

    @property
    def key(self) -> str:
        """The correlation key this handle is bound to."""
        return self._pending.key

    def done(self) -> bool:
        """Whether the attempt has been resolved."""
        return self._pending.future.done()

    async def wait(self) -> RunResult:
        """Wait for the attempt's terminal callback."""
        return await self._pending.future

    def __await__(self):
        return self.wait().__await__()


class CallbackListener:
    """Owns the correlation-key registration table.

    Every registration and resolution goes through this object. Events for
    different keys may be handled concurrently; events for the same key are
    serialized by the attempt's own lock.
    """

    def __init__(
        self,
        on_alert: Callable[[str], None] | None = None,
        resolved_history: int = DEFAULT_RESOLVED_HISTORY,
    ) -> None:
        self._pending: dict[str, PendingAttempt] = {}
        # Recently resolved keys, oldest first, to tell late callbacks from unknown ones
        self._resolved: dict[str, None] = {}
        self._resolved_history = resolved_history
        self._on_alert = on_alert

    @property
    def pending_keys(self) -> list[str]:
        """Keys currently awaiting a terminal callback."""
        return list(self._pending)

    def register(self, key: str) -> CallbackHandle:
        """Start watching for callbacks carrying ``key``.

        Must be called from within a running event loop.
        """
        if key in self._pending:
            msg = f"Correlation key already registered: {key}"
            raise DuplicateCorrelationKey(msg)

        loop = asyncio.get_running_loop()
        pending = PendingAttempt(key=key, future=loop.create_future())
        self._pending[key] = pending
        _ = self._resolved.pop(key, None)
        logger.debug("Registered %s", key)
        return CallbackHandle(pending)

    def deregister(self, key: str) -> None:
        """Stop watching ``key``, cancelling its handle if still unresolved."""
        pending = self._pending.pop(key, None)
        if pending is not None and not pending.future.done():
            _ = pending.future.cancel()
            logger.debug("Deregistered %s before resolution", key)

    async def handle_event(self, key: str, payload: CallbackPayload) -> bool:
        """Apply one callback to the matching attempt.

        Returns:
            True if the key matched a pending attempt, False if the event
            was dropped.

        """
        pending = self._pending.get(key)
        if pending is None:
            if key in self._resolved:
                logger.warning(
                    "Late %s callback for already resolved attempt %s, ignoring",
                    payload.status.value,
                    key,
                )
            else:
                logger.debug("Dropping %s callback for unknown key %s", payload.status.value, key)
            return False

        async with pending.lock:
            # Resolved while we were waiting for the lock
            if pending.future.done():
                return False
            self._apply(pending, payload)
        return True

    def _apply(self, pending: PendingAttempt, payload: CallbackPayload) -> None:
        if payload.status is CallbackStatus.ERROR:
            pending.errors += 1
            message = f"Remote job for {pending.key} reported an error ({pending.errors} so far)"
            logger.error("%s, still waiting for completion or retry", message)
            if self._on_alert is not None:
                self._on_alert(message)
            return

        if payload.has_row:
            # Partial data, including COMPLETED events that carry a row
            pending.rows.append(
                RowResult(
                    row_id=payload.row_id,
                    response_values=payload.response_values or [],
                )
            )
            return

        if payload.status is CallbackStatus.COMPLETED:
            result = RunResult(
                rows=list(pending.rows),
                log_url=payload.log_url,
                capabilities=payload.capabilities,
            )
            pending.future.set_result(result)
            del self._pending[pending.key]
            self._remember_resolved(pending.key)
            logger.info("Attempt %s completed with %d row(s)", pending.key, len(result.rows))

    def _remember_resolved(self, key: str) -> None:
        self._resolved[key] = None
        while len(self._resolved) > self._resolved_history:
            del self._resolved[next(iter(self._resolved))]
