import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from routefilter.api import filter_router, health_router
from routefilter.config import settings
from routefilter.log_util import configure_logging
from routefilter.models.failure import (
    KnownError,
    create_known_failure,
    create_unknown_failure,
)
from routefilter.services.active_filter import active_filter

logger = logging.getLogger(__name__)


def _app_version() -> str:
    try:
        return pkg_version("routefilter")
    except PackageNotFoundError:
        return "0.0.0"


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    configure_logging("DEBUG" if settings.debug else settings.log_level)
    if settings.scheduler_config_path:
        # Fail fast: a malformed configuration prevents startup
        active_filter.reload(Path(settings.scheduler_config_path))
    else:
        logger.warning("NO_SCHEDULER_CONFIG", extra={"setting": "scheduler_config_path"})
    yield


app = FastAPI(
    title=settings.app_name,
    version=_app_version(),
    lifespan=lifespan,
)

app.include_router(filter_router)
app.include_router(health_router)


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    logger.warning(
        "KNOWN_FAILURE",
        extra={"kind": exc.kind.value, "error_message": exc.message, "detail": exc.detail},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=create_known_failure(exc).model_dump(mode="json"),
    )


@app.exception_handler(Exception)
async def unknown_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("UNKNOWN_FAILURE")
    return JSONResponse(
        status_code=500,
        content=create_unknown_failure(exc).model_dump(mode="json"),
    )
