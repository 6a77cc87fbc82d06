"""HTTP server for ``product-helper serve``.

``create_app`` builds the FastAPI application: the ``/api`` router, CORS for
the browser client, and the error mapping that turns the exception taxonomy
into JSON responses. Upstream clients are created once per app and closed on
shutdown; tests inject their own.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from product_helper import __version__
from product_helper.api.routes import router
from product_helper.config import Settings, get_settings
from product_helper.context.library import ReferenceLibrary
from product_helper.context.refresh import refresh_cache
from product_helper.errors import ConfigurationError, UpstreamServiceError, UserInputError
from product_helper.integrations.github import GitHubClient
from product_helper.integrations.shortcut import ShortcutClient
from product_helper.llm.completion import CompletionInvoker

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    tracker: ShortcutClient | None = None,
    github: GitHubClient | None = None,
    invoker: CompletionInvoker | None = None,
) -> FastAPI:
    """Build the Product Helper API application."""
    settings = settings or get_settings()
    tracker = tracker or ShortcutClient.from_settings(settings)
    github = github or GitHubClient.from_settings(settings)
    invoker = invoker or CompletionInvoker(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await tracker.aclose()
        await github.aclose()

    app = FastAPI(
        title="Product Helper API",
        description="Planning assistant for objectives, epics and stories.",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.tracker = tracker
    app.state.github = github
    app.state.invoker = invoker
    app.state.library = ReferenceLibrary(
        settings.library_path, rebuild=lambda: refresh_cache(tracker, settings)
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Error mapping ---------------------------------------------------
    @app.exception_handler(UserInputError)
    async def user_input_error(request: Request, exc: UserInputError):
        return JSONResponse(status_code=400, content={"error": exc.message, "field": exc.field})

    @app.exception_handler(ConfigurationError)
    async def configuration_error(request: Request, exc: ConfigurationError):
        logger.error("%s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=503, content={"error": str(exc)})

    @app.exception_handler(UpstreamServiceError)
    async def upstream_error(request: Request, exc: UpstreamServiceError):
        logger.error("%s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=502, content={"error": str(exc), "status": exc.status})

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    app.include_router(router, prefix="/api")
    return app


def run_server(settings: Settings, host: str | None = None, port: int | None = None) -> None:
    """Serve the API under uvicorn (blocking)."""
    import uvicorn

    host = host or settings.web_host
    port = port or settings.web_port
    logger.info("Product Helper API on http://%s:%s", host, port)
    uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level.lower())
