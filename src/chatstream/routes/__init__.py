"""HTTP API routes."""

from .health import health_routes
from .stream import stream_routes

__all__ = [
    "health_routes",
    "stream_routes",
]
