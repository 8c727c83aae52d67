# Copyright (c) Syntropy Systems
"""FastAPI application exposing the callback endpoint."""

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import ValidationError

from quorum.errors import MalformedCallback
from quorum.listener import CallbackListener
from quorum.models.api import CallbackAck, CallbackPayload, HealthResponse

logger = logging.getLogger(__name__)

DEFAULT_CALLBACK_HEADER = "x-quorum-correlation-key"


def get_listener(request: Request) -> CallbackListener:
    """Get the listener owned by the application."""
    return request.app.state.listener


def parse_callback(body: bytes) -> CallbackPayload:
    """Validate a raw callback body.

    Raises:
        MalformedCallback: If the body is not a valid callback payload.

    """
    try:
        return CallbackPayload.model_validate_json(body)
    except ValidationError as e:
        msg = f"Invalid callback payload: {e.error_count()} error(s)"
        raise MalformedCallback(msg) from e


def create_app(
    listener: CallbackListener,
    callback_header: str = DEFAULT_CALLBACK_HEADER,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        listener: Listener that owns the correlation-key registrations
        callback_header: Header carrying the correlation key

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="quorum listener",
        description="Callback endpoint for remote test runs",
        version="0.1.0",
    )
    app.state.listener = listener

    @app.post("/callback", response_model=CallbackAck, status_code=202)
    async def callback(
        request: Request,
        listener: CallbackListener = Depends(get_listener),
    ) -> CallbackAck:
        """Receive a callback from a remote job."""
        key = request.headers.get(callback_header)
        if not key:
            raise HTTPException(status_code=400, detail=f"Missing {callback_header} header")

        try:
            payload = parse_callback(await request.body())
        except MalformedCallback as e:
            logger.warning("Dropping malformed callback for %s: %s", key, e)
            raise HTTPException(status_code=400, detail=str(e)) from e

        matched = await listener.handle_event(key, payload)
        if not matched:
            return CallbackAck(matched=False, message=f"No pending attempt for {key}")
        return CallbackAck(matched=True)

    @app.get("/health", response_model=HealthResponse)
    async def health_check(listener: CallbackListener = Depends(get_listener)) -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy", pending=len(listener.pending_keys))

    return app
