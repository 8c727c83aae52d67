# Copyright (c) Syntropy Systems
"""Run the callback application inside the current event loop."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
from typing import TYPE_CHECKING

import uvicorn

from quorum.errors import SetupError

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


class ListenerServer:
    """Serves the callback app on a pre-bound socket.

    Binding up front turns a busy port into a SetupError before any
    dispatch work starts.
    """

    def __init__(self, app: FastAPI, host: str = "127.0.0.1", port: int = 8910) -> None:
        self.app = app
        self.host = host
        self.port = port
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task[None] | None = None
        self._sock: socket.socket | None = None

    def _bind(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
        except OSError as e:
            sock.close()
            msg = f"Cannot bind callback listener to {self.host}:{self.port}: {e}"
            raise SetupError(msg) from e
        sock.set_inheritable(True)
        return sock

    async def start(self, startup_timeout: float = 10.0) -> None:
        """Bind and start serving; returns once the server accepts requests."""
        self._sock = self._bind()
        self.port = self._sock.getsockname()[1]
        config = uvicorn.Config(self.app, log_level="warning", lifespan="off")
        self._server = uvicorn.Server(config)
        self._task = asyncio.create_task(self._server.serve(sockets=[self._sock]))

        loop = asyncio.get_running_loop()
        deadline = loop.time() + startup_timeout
        while not self._server.started:
            if self._task.done():
                cause = None if self._task.cancelled() else self._task.exception()
                self._task = None
                await self.stop()
                msg = f"Callback listener failed to start on {self.host}:{self.port}"
                raise SetupError(msg) from cause
            if loop.time() > deadline:
                await self.stop()
                msg = f"Callback listener did not start within {startup_timeout}s"
                raise SetupError(msg)
            await asyncio.sleep(0.05)
        logger.info("Callback listener on http://%s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut the server down and release the socket."""
        if self._server is not None:
            self._server.should_exit = True
        if self._task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        if self._sock is not None:
            self._sock.close()
            self._sock = None
        self._server = None
