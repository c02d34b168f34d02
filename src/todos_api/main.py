import logging
import os
from pathlib import Path

import typer
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from todos_api.errors import TodoApiError
from todos_api.logging_setup import setup_logging
from todos_api.routes import create_routes
from todos_api.store import TaskStore

logger = logging.getLogger(__name__)

DEFAULT_PORT = 5318

cli = typer.Typer(help="Serve an in-memory task list over HTTP.")


async def _handle_api_error(request: Request, exc: TodoApiError) -> Response:
    if exc.message is None:
        return Response(status_code=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=exc.message)


def create_app(
    store: TaskStore | None = None,
    seed_path: Path | None = None,
) -> FastAPI:
    """Create FastAPI app serving the given (or a fresh) task store."""
    if store is None:
        store = TaskStore()
    if seed_path is not None:
        count = store.load_jsonl(seed_path)
        logger.info("Loaded %d tasks from %s", count, seed_path)

    # "/todos/" is an unknown path, not a redirect to "/todos".
    app = FastAPI(title="Todos API", redirect_slashes=False)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def allow_any_origin(request: Request, call_next):
        response = await call_next(request)
        response.headers["Access-Control-Allow-Origin"] = "*"
        return response

    app.add_exception_handler(TodoApiError, _handle_api_error)
    app.include_router(create_routes(store))
    return app


@cli.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(DEFAULT_PORT, help="Port to bind to"),
    seed: Path | None = typer.Option(
        None, "--seed", help="JSONL file of tasks to preload"
    ),
    log_level: str = typer.Option("info", help="Logging level"),
) -> None:
    """Start the task list API server."""
    if seed is not None and not seed.exists():
        raise typer.BadParameter(f"File not found: {seed}")

    setup_logging(log_level.upper())
    app = create_app(seed_path=seed)

    logger.info("Todos server listening on port %d", port)
    try:
        uvicorn.run(app, host=host, port=port, log_config=None)
    except SystemExit as exc:
        # uvicorn exits the process when it cannot bind.
        logger.error("Server stopped: exit code %s", exc.code)
        raise
    logger.info("Server closed")


# Lazy app for uvicorn: todos_api.main:app (no file loading at import time).
_default_seed = os.environ.get("TODOS_API_SEED")
_cached_app: FastAPI | None = None


def get_app() -> FastAPI:
    """Return the FastAPI app, creating it from env vars on first use."""
    global _cached_app
    if _cached_app is None:
        seed_path = Path(_default_seed) if _default_seed else None
        _cached_app = create_app(seed_path=seed_path)
    return _cached_app


class _LazyASGI:
    """ASGI callable that delegates to get_app() on first request."""

    async def __call__(self, scope, receive, send):
        await get_app()(scope, receive, send)


app = _LazyASGI()

if __name__ == "__main__":
    cli()
