"""FastAPI application for invoify."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from invoify import DataStore
from invoify.config import InvoifyConfig
import dataclasses
from .config import settings
from .routers import backup, health, management

# Configure invoify logger with app-managed pattern
# This ensures INFO logs are visible regardless of uvicorn's logging config
import sys
import os

invoify_logger = logging.getLogger("invoify")
invoify_logger.setLevel(logging.INFO)

# App-managed pattern: attach our own handler and don't propagate
invoify_logger.propagate = False
invoify_logger.handlers.clear()

console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(logging.INFO)
formatter = logging.Formatter(
    '%(asctime)s - [%(name)s] - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
console_handler.setFormatter(formatter)
invoify_logger.addHandler(console_handler)

# Allow disabling app-managed logging via env var for production
if os.getenv("DISABLE_APP_LOGGING", "false").lower() == "true":
    invoify_logger.handlers.clear()
    invoify_logger.propagate = True  # Fall back to server-managed pattern

logger = logging.getLogger(__name__)


def build_config() -> InvoifyConfig:
    """Environment config with the API settings layered on top."""
    config = InvoifyConfig.from_env()

    storage_overrides = {}
    if settings.storage_backend:
        storage_overrides["backend"] = settings.storage_backend
    if settings.working_dir:
        storage_overrides["working_dir"] = settings.working_dir
    if settings.redis_url:
        storage_overrides["redis_url"] = settings.redis_url
        storage_overrides["redis_password"] = settings.redis_password

    backup_overrides = {}
    if settings.backup_dir:
        backup_overrides["backup_dir"] = settings.backup_dir
    if settings.default_keep is not None:
        backup_overrides["default_keep"] = settings.default_keep

    return dataclasses.replace(
        config,
        storage=dataclasses.replace(config.storage, **storage_overrides),
        backup=dataclasses.replace(config.backup, **backup_overrides),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage DataStore lifecycle."""
    logger.info("Initializing DataStore...")

    config = build_config()

    try:
        app.state.datastore = DataStore(config=config)
        logger.info("DataStore initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize DataStore: {e}")
        raise

    app.state.backup_config = config.backup
    # PDF rendering is provided by the embedding application
    if not hasattr(app.state, "invoice_renderer"):
        app.state.invoice_renderer = None

    yield

    logger.info("Shutting down DataStore...")
    await app.state.datastore.flush()


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed requests as 400 Bad Request."""
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request", "errors": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(backup.router, prefix=settings.api_prefix)
    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(management.router, prefix=settings.api_prefix)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": settings.api_title,
            "version": settings.api_version,
            "docs": f"{settings.api_prefix}/docs"
        }

    return app


# Create default app instance
app = create_app()
