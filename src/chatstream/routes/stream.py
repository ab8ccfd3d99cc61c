"""Streaming proxy endpoint.

Accepts a chat request naming a provider, attaches that provider's secret
from the environment, forwards the request upstream and streams the raw
upstream body back as ``text/event-stream``. Secrets never reach the client.
"""

from __future__ import annotations

import json
import logging

import httpx
from pydantic import ValidationError
from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse
from starlette.routing import Route

from ..exceptions import UnknownProviderError
from ..providers import StreamRequest, get_provider

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "Please make sure you have set up your API key."

STREAM_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


def _error(message: str, status_code: int, **extra: object) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


async def stream_completion(request: Request) -> Response:
    """POST /api/stream - proxy a streaming completion to a provider."""
    try:
        body = StreamRequest.model_validate(await request.json())
    except json.JSONDecodeError:
        return _error("Request body must be JSON", 400)
    except ValidationError as e:
        details = e.errors(include_url=False, include_context=False)
        return _error("Invalid stream request", 400, details=details)

    try:
        provider = get_provider(body.provider)
    except UnknownProviderError as e:
        return _error(str(e), 400)

    secret = request.app.state.settings.secret_for(provider)
    if not secret:
        logger.error(f"No API key configured for {provider.name} ({provider.env_var})")
        return _error(MISSING_KEY_MESSAGE, 500)

    client: httpx.AsyncClient = request.app.state.http_client
    upstream_request = client.build_request(
        "POST",
        provider.url,
        headers=provider.headers(secret),
        json=provider.payload_for(body.messages, body.model),
    )

    try:
        upstream = await client.send(upstream_request, stream=True)
    except httpx.RequestError as e:
        logger.warning(f"Upstream {provider.name} request failed: {e}")
        return _error(f"Upstream {provider.name} unreachable", 502)

    if not upstream.is_success:
        await upstream.aread()
        await upstream.aclose()
        logger.warning(
            f"Upstream {provider.name} returned {upstream.status_code}: {upstream.text[:200]}"
        )
        return _error(
            f"Upstream {provider.name} request failed",
            502,
            upstream_status=upstream.status_code,
        )

    logger.info(f"Streaming {provider.name} response ({len(body.messages)} messages)")
    return StreamingResponse(
        upstream.aiter_raw(),
        headers=STREAM_HEADERS,
        background=BackgroundTask(upstream.aclose),
    )


stream_routes = [
    Route("/api/stream", stream_completion, methods=["POST"]),
]
