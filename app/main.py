from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.ai import router as ai_router
from app.api import router
from app.realtime import router as realtime_router
from app.schemas import failure
from app.web import router as web_router
from logging_config import configure_logging
from services.runtime import PlantRuntime, build_default_runtime

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    override: Optional[PlantRuntime] = app.state.runtime_override
    runtime = override or build_default_runtime()
    app.state.runtime = runtime
    runtime.scheduler.start()
    try:
        yield
    finally:
        await runtime.shutdown()
        if override is None:
            build_default_runtime.cache_clear()


def _envelope_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=failure(message).model_dump(mode="json"))


async def _http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _envelope_response(exc.status_code, str(exc.detail))


async def _validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    )
    return _envelope_response(status.HTTP_422_UNPROCESSABLE_ENTITY, f"Invalid request: {problems}")


async def _unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error while serving request", extra={"reason": type(exc).__name__})
    return _envelope_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def create_app(runtime: Optional[PlantRuntime] = None) -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Cement Plant Dashboard",
        description="Simulated cement plant telemetry with live updates and an AI assistant.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.runtime_override = runtime
    app.state.runtime = runtime
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
    app.include_router(router)
    app.include_router(ai_router)
    app.include_router(realtime_router)
    app.include_router(web_router)
    return app


app = create_app()
