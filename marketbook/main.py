"""
FastAPI application entry point.
Mounts routes, CORS, Prometheus metrics and uploaded media; maps the error
taxonomy onto JSON responses.
"""

import logging
import traceback
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from prometheus_client import make_asgi_app

from marketbook.api.v1.router import api_router
from marketbook.cache.redis_client import close_redis
from marketbook.config import get_settings
from marketbook.core.errors import AppError, AuthenticationError, InternalError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: nothing to warm up. Shutdown: release the Redis pool."""
    yield
    await close_redis()


def _error_body(message: str, exc: Exception | None = None) -> dict:
    body = {"message": message}
    if exc is not None and get_settings().debug:
        body["stack"] = "".join(traceback.format_exception(exc))
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    if isinstance(exc, InternalError):
        logger.error("Internal error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(_error_body(exc.message, exc), status_code=exc.status_code)
    return JSONResponse({"message": exc.message}, status_code=exc.status_code, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {"loc": (), "msg": "Invalid request"}
    field = ".".join(str(part) for part in first["loc"] if part != "body") or "body"
    return JSONResponse(
        {"message": f"{field}: {first['msg']}", "errors": jsonable_encoder(errors)},
        status_code=400,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(_error_body(InternalError.default_message, exc), status_code=500)


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title=settings.app_name,
        description="Marketplace bookkeeping: items, invoices, payment status, audit trail and notifications.",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Prometheus metrics at /metrics
    app.mount("/metrics", make_asgi_app())

    app.include_router(api_router, prefix="/api")

    media_dir = Path(settings.media_root)
    media_dir.mkdir(parents=True, exist_ok=True)
    app.mount(settings.media_url_prefix, StaticFiles(directory=str(media_dir)), name="media")

    return app


app = create_app()
