"""FastAPI application factory."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from fleet.cache import init_cache, close_cache
from fleet.config import settings
from fleet.database import create_async_db_engine, create_session_factory
from fleet.errors import FleetError
from fleet.schemas import ErrorDetail


# Configure logging
numeric_level = logging._nameToLevel.get(settings.LOG_LEVEL.upper(), logging.INFO)
logging.basicConfig(
    level=numeric_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info("Starting up fleet API...")

    app.state.db_engine = create_async_db_engine(settings.DATABASE_URL, echo=settings.DEBUG)
    app.state.session_factory = create_session_factory(app.state.db_engine)
    logger.info("Database engine and session factory initialized")

    app.state.redis = await init_cache(settings.REDIS_URL)

    yield

    logger.info("Shutting down fleet API...")
    await close_cache()
    await app.state.db_engine.dispose()
    logger.info("Database connections closed")


async def fleet_error_handler(request: Request, exc: FleetError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        {"error": exc.error, "message": exc.message},
        status_code=exc.status_code,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        ErrorDetail(
            field=".".join(str(part) for part in err["loc"][1:]),
            message=err["msg"],
        ).model_dump()
        for err in exc.errors()
    ]
    return JSONResponse({"error": "Validation error", "details": details}, status_code=400)


async def integrity_error_handler(request: Request, exc: IntegrityError):
    return JSONResponse(
        {"error": "Duplicate entry", "message": "Resource already exists"},
        status_code=409,
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    message = str(exc) if settings.ENV == "development" else "Something went wrong"
    return JSONResponse(
        {"error": "Internal server error", "message": message},
        status_code=500,
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Fleet Tracking API",
        description="Vehicle records, daily status summaries and trip reports",
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

    app.add_exception_handler(FleetError, fleet_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    from .routes import router
    app.include_router(router)

    return app


# Create app instance
app = create_app()
