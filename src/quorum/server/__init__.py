# Copyright (c) Syntropy Systems
"""quorum callback server."""

from .app import create_app, parse_callback
from .serve import ListenerServer

__all__ = [
    "ListenerServer",
    "create_app",
    "parse_callback",
]
