"""Health check endpoint."""

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..providers import PROVIDERS


async def health_check(request: Request) -> JSONResponse:
    """Report liveness and which providers have a key configured."""
    settings = request.app.state.settings
    providers = {
        name: settings.secret_for(adapter) is not None for name, adapter in PROVIDERS.items()
    }
    return JSONResponse({"status": "ok", "providers": providers})


health_routes = [
    Route("/health", health_check, methods=["GET"]),
]
