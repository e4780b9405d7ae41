"""Main entry point for the fetchkit developer CLI.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import json
import logging
from typing import Annotated, Any, Awaitable, Callable, Dict, List, Optional, Tuple

import typer

# --- Core Layer ---
from fetchkit.core.command_handler import CommandHandler
from fetchkit.core.services.content_service import ContentService

# --- Domain Layer ---
from fetchkit.domain.events.api_events import TokenExpired, Unauthorized
from fetchkit.domain.events.dispatcher import EventDispatcher

# --- Infrastructure Layer ---
from fetchkit.infrastructure.auth.token_store import InMemoryTokenProvider
from fetchkit.infrastructure.cli.display import ConsoleDisplay
from fetchkit.infrastructure.config.settings import (
    get_api_base_url,
    get_api_token,
    get_cache_ttl_seconds,
    get_config,
    get_content_base_url,
    get_preload_names,
    get_request_timeout,
    load_configuration,
)
from fetchkit.infrastructure.content.content_loader import ContentLoader
from fetchkit.infrastructure.http.api_client import ApiClient
from fetchkit.infrastructure.monitoring.logger_setup import (
    DEFAULT_LOG_FORMAT,
    resolve_log_level,
    setup_logging,
)

logger = logging.getLogger(__name__)

# --- Dependency Injection Container (Manual) ---

def create_dependencies(token: Optional[str] = None, verbose: bool = False) -> Dict[str, Any]:
    """Creates and wires up all dependencies for one CLI invocation.

    This acts as the Composition Root. It must run inside the event loop that
    will use the clients.
    """
    # 1. Load Configuration First
    load_configuration()
    log_level = logging.DEBUG if verbose else resolve_log_level(get_config("logging.level"))
    setup_logging(
        log_level=log_level,
        log_file=get_config("logging.file"),
        log_format=get_config("logging.format", DEFAULT_LOG_FORMAT),
    )
    logger.info("Configuration and logging initialized.")

    dependencies: Dict[str, Any] = {}

    # 2. Instantiate Infrastructure Adapters
    dependencies["ui"] = ConsoleDisplay()
    dependencies["dispatcher"] = EventDispatcher()
    dependencies["token_provider"] = InMemoryTokenProvider(token or get_api_token())
    dependencies["api_client"] = ApiClient(
        get_api_base_url(),
        token_provider=dependencies["token_provider"],
        dispatcher=dependencies["dispatcher"],
        timeout=get_request_timeout(),
    )
    dependencies["content_loader"] = ContentLoader(
        get_content_base_url(),
        ttl_seconds=get_cache_ttl_seconds(),
        timeout=get_request_timeout(),
    )

    # 3. Surface auth signals to the user
    ui = dependencies["ui"]
    dependencies["dispatcher"].subscribe(
        TokenExpired, lambda event: ui.display_warning(f"Access token expired ({event.method} {event.url}).")
    )
    dependencies["dispatcher"].subscribe(
        Unauthorized, lambda event: ui.display_warning(f"Not authorized ({event.method} {event.url}).")
    )

    # 4. Instantiate Core Services
    dependencies["content_service"] = ContentService(dependencies["content_loader"], get_preload_names())
    dependencies["command_handler"] = CommandHandler(
        api_client=dependencies["api_client"],
        content_service=dependencies["content_service"],
        ui=ui,
    )
    logger.info("All dependencies initialized successfully.")
    return dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="fetchkit",
    help="fetchkit: resilient JSON API client and coalescing content cache.",
    add_completion=False,
)

# --- Helper for Running Async Commands ---

def _run(ctx: typer.Context, command: Callable[[CommandHandler], Awaitable[bool]]) -> None:
    """Builds dependencies, runs one handler coroutine and sets the exit code."""
    options = ctx.obj or {}

    async def runner() -> bool:
        dependencies = create_dependencies(options.get("token"), options.get("verbose", False))
        async with dependencies["api_client"], dependencies["content_loader"]:
            return await command(dependencies["command_handler"])

    if not asyncio.run(runner()):
        raise typer.Exit(code=1)


def _parse_query(values: Optional[List[str]]) -> List[Tuple[str, str]]:
    pairs: List[Tuple[str, str]] = []
    for value in values or []:
        key, sep, rest = value.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{value}'", param_hint="--query")
        pairs.append((key, rest))
    return pairs


def _parse_body(data: str) -> Any:
    try:
        return json.loads(data)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"Invalid JSON body: {e}", param_hint="--data")


# --- CLI Commands ---

EndpointArgument = Annotated[str, typer.Argument(help="Endpoint path relative to the API base URL.")]
QueryOption = Annotated[
    Optional[List[str]],
    typer.Option("--query", "-q", help="Query parameter as key=value. Repeatable."),
]
DataOption = Annotated[str, typer.Option("--data", "-d", help="JSON request body.")]


@app.command()
def get(
    ctx: typer.Context,
    endpoint: EndpointArgument,
    query: QueryOption = None,
    retries: Annotated[int, typer.Option("--retries", "-r", min=0, help="Extra attempts for transient failures.")] = 1,
):
    """GET an endpoint with retry and print the JSON body."""
    pairs = _parse_query(query)
    _run(ctx, lambda handler: handler.handle_get(endpoint, pairs, retries))


@app.command()
def paged(
    ctx: typer.Context,
    endpoint: EndpointArgument,
    query: QueryOption = None,
):
    """GET a list endpoint and print its items and total."""
    pairs = _parse_query(query)
    _run(ctx, lambda handler: handler.handle_paged(endpoint, pairs))


@app.command()
def post(ctx: typer.Context, endpoint: EndpointArgument, data: DataOption):
    """POST a JSON body."""
    body = _parse_body(data)
    _run(ctx, lambda handler: handler.handle_write("POST", endpoint, body))


@app.command()
def put(ctx: typer.Context, endpoint: EndpointArgument, data: DataOption):
    """PUT a JSON body."""
    body = _parse_body(data)
    _run(ctx, lambda handler: handler.handle_write("PUT", endpoint, body))


@app.command()
def delete(ctx: typer.Context, endpoint: EndpointArgument, query: QueryOption = None):
    """DELETE an endpoint."""
    pairs = _parse_query(query)
    _run(ctx, lambda handler: handler.handle_delete(endpoint, pairs))


@app.command()
def content(
    ctx: typer.Context,
    names: Annotated[List[str], typer.Argument(help="Resource names, tried in order.")],
):
    """Print the first available content resource."""
    _run(ctx, lambda handler: handler.handle_content(names))


@app.command()
def preload(
    ctx: typer.Context,
    names: Annotated[List[str], typer.Argument(help="Resource names to warm up.")],
):
    """Fetch content resources concurrently and report which were cached."""
    _run(ctx, lambda handler: handler.handle_preload(names))


@app.callback()
def main_callback(
    ctx: typer.Context,
    token: Annotated[
        Optional[str],
        typer.Option("--token", "-t", envvar="FETCHKIT_API_TOKEN", help="Bearer token for API requests."),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """Resilient JSON API client and content cache."""
    ctx.obj = {"token": token, "verbose": verbose}


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
