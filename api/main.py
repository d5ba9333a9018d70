"""FastAPI application factory for the smart defaults service."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router
from core.config import Settings, get_settings
from core.db import create_schema
from core.logging_config import new_request_id, reset_request_id, set_request_id, setup_logging

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000.0, 2)


def _install_request_logging(app: FastAPI, header_name: str) -> None:
    """Tag every request with an id (caller-supplied or generated) and log one access line."""

    @app.middleware("http")
    async def access_log(request: Request, call_next: CallNext) -> Response:
        incoming = request.headers.get(header_name, "").strip()
        request_id = incoming or new_request_id()
        token = set_request_id(request_id)
        started = time.perf_counter()
        fields = {"ctx_method": request.method, "ctx_path": request.url.path}
        try:
            response = await call_next(request)
            response.headers[header_name] = request_id
            logger.info("http_request", extra={**fields, "ctx_status_code": response.status_code, "ctx_duration_ms": _elapsed_ms(started)})
            return response
        except Exception:
            logger.exception("http_request_failed", extra={**fields, "ctx_duration_ms": _elapsed_ms(started)})
            raise
        finally:
            reset_request_id(token)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        # sqlite is created in place; postgres deployments run alembic
        if settings.database_url.startswith("sqlite"):
            create_schema()
            logger.info("sqlite schema ensured", extra={"ctx_database_url": settings.database_url})
        yield

    # interactive docs stay off in production
    docs_url = None if settings.is_production else "/docs"
    app = FastAPI(
        title="Session Smart Defaults API",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=docs_url,
        redoc_url=None,
        openapi_url=None if settings.is_production else "/openapi.json",
    )
    app.include_router(router)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
        expose_headers=[settings.request_id_header_name],
    )
    _install_request_logging(app, settings.request_id_header_name or "X-Request-ID")
    return app


app = create_app()
