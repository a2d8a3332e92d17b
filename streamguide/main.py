from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, Request

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from streamguide.config import settings, setup_logging
from streamguide.schemas import ErrorDetail, StandardErrorResponse
from streamguide.services.fetch_coordinator import get_schedule_store
from streamguide.services.schedule_cache import load_schedule
from streamguide.services.scheduler_service import epg_scheduler

from streamguide.routers import main_router


setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Starting StreamGuide...")

    try:
        if settings.epg_cache_enabled:
            logger.info("Loading schedule cache...")
            cached = await load_schedule(settings.epg_cache_path)
            if cached is not None:
                get_schedule_store().replace(cached)

        logger.info("Starting scheduler...")
        epg_scheduler.start()

        logger.info("StreamGuide started successfully")
    except Exception as e:
        logger.error(f"Failed to start StreamGuide: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down StreamGuide...")

    try:
        epg_scheduler.shutdown()
    except Exception as e:
        logger.error(f"Error during scheduler shutdown: {e}", exc_info=True)

    logger.info("StreamGuide stopped")


app = FastAPI(
    title="StreamGuide",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(main_router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log validation errors with details"""
    logger.error(f"Validation error for {request.method} {request.url.path}")
    logger.error(f"Validation details: {exc.errors()}")

    errors = []
    for error in exc.errors():
        errors.append({
            "type": error.get("type"),
            "loc": list(error.get("loc", ())),
            "msg": error.get("msg"),
            "input": str(error.get("input", ""))[:100]
        })

    response = StandardErrorResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        error=ErrorDetail(
            code="VALIDATION_ERROR",
            message="Request validation failed",
            context={"errors": errors}
        )
    )
    return JSONResponse(status_code=422, content=response.model_dump())
