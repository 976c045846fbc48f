"""FastAPI app factory and process entrypoint for the redirector."""
from __future__ import annotations

import asyncio
import sys
import time
from collections.abc import Callable
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse

from . import __version__
from .api import router as api_router
from .cli import parse_args
from .config import Settings
from .domain.errors import ConfigurationError, NotFound, RedirectorError, RenderError
from .domain.routes import RouteTable
from .lifecycle import serve
from .logging_conf import get_logger, setup_logging
from .service.redirect_service import build_route_table

logger = get_logger("redirector")


def create_app(table: RouteTable, settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    app = FastAPI(
        title="go-import-redirector",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.route_table = table
    app.state.settings = settings

    @app.on_event("startup")
    async def _on_startup() -> None:
        logger.info("startup", extra={"event": "startup", "roots": table.roots()})

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        logger.info("shutdown", extra={"event": "shutdown"})

    @app.exception_handler(NotFound)
    async def _not_found(request: Request, exc: NotFound) -> PlainTextResponse:
        return PlainTextResponse("404 page not found", status_code=404)

    @app.exception_handler(RenderError)
    async def _render_failed(request: Request, exc: RenderError) -> PlainTextResponse:
        logger.error(
            "render.error",
            extra={"event": "render_error", "path": request.url.path, "error": str(exc)},
        )
        return PlainTextResponse(str(exc), status_code=500)

    @app.middleware("http")
    async def request_logger(request: Request, call_next: Callable[[Request], Response]):
        """JSON request logging with a correlation id.

        - Reuses an incoming X-Request-ID, otherwise mints one
        - Logs request.start / request.end with host, path, status, elapsed_ms
        - Echoes X-Request-ID on the response
        """
        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        request.state.request_id = request_id

        start = time.perf_counter()
        logger.info(
            "request.start",
            extra={
                "event": "request_start",
                "method": request.method,
                "host": request.headers.get("host", ""),
                "path": request.url.path,
                "request_id": request_id,
            },
        )
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request.error",
                extra={
                    "event": "request_error",
                    "path": request.url.path,
                    "method": request.method,
                    "request_id": request_id,
                },
            )
            raise
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000.0

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request.end",
            extra={
                "event": "request_end",
                "status_code": response.status_code,
                "elapsed_ms": round(elapsed_ms, 2),
                "request_id": request_id,
            },
        )
        return response

    app.include_router(api_router)

    return app


def main(argv: list[str] | None = None) -> None:
    settings, pairs = parse_args(sys.argv[1:] if argv is None else argv)
    setup_logging(settings.log_level)

    try:
        table = build_route_table(pairs, default_vcs=settings.vcs)
    except ConfigurationError as e:
        logger.error("config.error", extra={"event": "config_error", "code": e.code, "error": str(e)})
        raise SystemExit(1) from e

    app = create_app(table, settings)
    try:
        asyncio.run(serve(app, settings))
    except RedirectorError as e:
        logger.error("fatal", extra={"event": "fatal", "code": e.code, "error": str(e)})
        raise SystemExit(1) from e
    raise SystemExit(0)


if __name__ == "__main__":
    main()
