"""chatstream CLI.

Usage:
    chatstream serve                          # Run the streaming proxy
    chatstream serve --port 8080 --reload     # Custom port, auto-reload
    chatstream health                         # Check proxy health

    chatstream ask "Hello"                    # Stream a completion via the proxy
    chatstream ask -p anthropic "Hello"       # Pick the provider

    chatstream listen ws://host/stream        # Print messages from a WebSocket
    chatstream listen URL -s ping -s pong     # Send messages after connecting
"""

from __future__ import annotations

import asyncio
import logging
import sys

import click
import httpx

from .config import Settings
from .connection import create_stream_connection, create_websocket_connection
from .exceptions import MalformedChunkError, TransportError
from .providers import PROVIDERS, ChatMessage, StreamRequest, get_provider
from .transformer import SSEParser

logger = logging.getLogger(__name__)

DEFAULT_PROXY_URL = "http://127.0.0.1:4096"


def configure_logging(level: str) -> None:
    """Send all logging to stderr so streamed text on stdout stays clean."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level (default: CHATSTREAM_LOG_LEVEL or WARNING)",
)
@click.pass_context
def main(ctx: click.Context, log_level: str | None) -> None:
    """chatstream - live text streams over WebSocket or HTTP."""
    settings = Settings.from_env()
    configure_logging(log_level or settings.log_level)
    ctx.obj = settings


# =============================================================================
# Server Commands
# =============================================================================


@main.command()
@click.option("--host", default=None, help="Host to bind to (default: CHATSTREAM_HOST)")
@click.option("--port", default=None, type=int, help="Port to bind to (default: CHATSTREAM_PORT)")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.pass_obj
def serve(settings: Settings, host: str | None, port: int | None, reload: bool) -> None:
    """Run the streaming proxy server."""
    import uvicorn

    host = host or settings.host
    port = port or settings.port

    configured = [name for name, adapter in PROVIDERS.items() if settings.secret_for(adapter)]
    click.echo(f"Starting chatstream proxy on http://{host}:{port}", err=True)
    click.echo(f"  Providers with keys: {', '.join(configured) or 'none'}", err=True)
    click.echo("Press Ctrl+C to stop", err=True)

    uvicorn.run(
        "chatstream.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@main.command()
@click.option("--url", default=DEFAULT_PROXY_URL, help="Proxy base URL")
def health(url: str) -> None:
    """Check proxy health."""

    async def check() -> None:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(f"{url}/health")
                if response.status_code == 200:
                    data = response.json()
                    click.echo(f"Server is healthy: {data}")
                else:
                    click.echo(f"Server returned {response.status_code}", err=True)
                    sys.exit(1)
        except httpx.ConnectError:
            click.echo(f"Cannot connect to server at {url}", err=True)
            sys.exit(1)

    asyncio.run(check())


# =============================================================================
# Client Commands
# =============================================================================


@main.command()
@click.argument("prompt")
@click.option(
    "--provider",
    "-p",
    type=click.Choice(sorted(PROVIDERS)),
    default="openai",
    help="Upstream provider",
)
@click.option("--model", "-m", default=None, help="Model name (default: provider default)")
@click.option("--url", default=DEFAULT_PROXY_URL, help="Proxy base URL")
def ask(prompt: str, provider: str, model: str | None, url: str) -> None:
    """Stream a completion for PROMPT through the proxy.

    Examples:

        chatstream ask "Write a haiku about sockets"

        chatstream ask -p anthropic -m claude-sonnet-4-5 "Hello"
    """
    request = StreamRequest(
        provider=provider,
        messages=[ChatMessage(role="user", content=prompt)],
        model=model,
    )
    try:
        asyncio.run(_ask(f"{url}/api/stream", request))
    except TransportError as e:
        click.echo(f"Stream failed: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted", err=True)


async def _ask(stream_url: str, request: StreamRequest) -> None:
    adapter = get_provider(request.provider)
    parser = SSEParser()

    def emit(payloads: list[str]) -> None:
        for data in payloads:
            try:
                text = adapter.transformer(data)
            except MalformedChunkError as e:
                logger.warning(f"Skipping malformed chunk: {e.chunk[:80]!r}")
                continue
            if text:
                click.echo(text, nl=False)

    conn = create_stream_connection(stream_url)
    conn.on_message(lambda chunk: emit(parser.feed(chunk)))
    try:
        await conn.connect(request.model_dump_json(exclude_none=True))
        await conn.wait_closed()
        emit(parser.flush())
    finally:
        await conn.close()
    click.echo()


@main.command()
@click.argument("url")
@click.option("--send", "-s", "messages", multiple=True, help="Message to send after connecting")
@click.option("--max-retries", default=3, show_default=True, help="Reconnect attempts")
@click.option("--backoff", default=1.0, show_default=True, help="Backoff step in seconds")
def listen(url: str, messages: tuple[str, ...], max_retries: int, backoff: float) -> None:
    """Connect to a WebSocket at URL and print every message received."""
    try:
        asyncio.run(_listen(url, messages, max_retries, backoff))
    except TransportError as e:
        click.echo(f"Cannot connect to {url}: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nShutting down", err=True)


async def _listen(url: str, messages: tuple[str, ...], max_retries: int, backoff: float) -> None:
    conn = create_websocket_connection(url, max_retries=max_retries, backoff_step=backoff)
    conn.on_message(click.echo)
    try:
        await conn.connect()
        for message in messages:
            await conn.send(message)
        await conn.wait_closed()
    finally:
        await conn.close()
    click.echo(f"Connection {conn.health.value}", err=True)
