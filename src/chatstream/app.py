"""chatstream proxy application.

Creates the Starlette ASGI application with all routes.

Route organization:
- /health - Health check and provider key status
- /api/stream - Streaming completion proxy (POST)
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncIterator

import httpx
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import Route

from .config import Settings
from .routes import health_routes, stream_routes


def create_app(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> Starlette:
    """Create the chatstream proxy application.

    Args:
        settings: Server settings (default: loaded from the environment)
        http_client: Upstream client to reuse. When omitted, one is created
            for the lifetime of the app and closed on shutdown.

    Returns:
        Configured Starlette application
    """
    settings = settings or Settings.from_env()

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        if app.state.http_client is not None:
            yield
            return

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(settings.upstream_timeout, read=None),
        ) as client:
            app.state.http_client = client
            try:
                yield
            finally:
                app.state.http_client = None

    # Combine all routes
    routes: list[Route] = []
    routes.extend(health_routes)
    routes.extend(stream_routes)

    # CORS middleware for local development
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origin_regex=r"http://(localhost|127\.0\.0\.1)(:\d+)?",
            allow_methods=["*"],
            allow_headers=["*"],
        ),
    ]

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.settings = settings
    app.state.http_client = http_client
    return app
