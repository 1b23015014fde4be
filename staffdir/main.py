"""Main application entry point for the Staff Directory API."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from staffdir.api.employees import employee_router
from staffdir.api.export import export_router
from staffdir.config.settings import get_settings
from staffdir.database.database import DatabaseConfig, dispose_engine, get_engine, init_db
from staffdir.utils.errors import APIError, FieldError, ValidationError

logger = logging.getLogger(__name__)

# Location prefixes FastAPI adds to request validation errors
_LOCATION_PREFIXES = ("body", "query", "path", "header")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} {settings.app_version}")

    config = DatabaseConfig.from_env()
    get_engine(config)
    if settings.create_tables:
        logger.info("DB_CREATE_TABLES set; creating missing tables")
        init_db(config)

    yield

    dispose_engine()
    logger.info(f"{settings.app_name} stopped")


# =============================================================================
# Exception Handlers
# =============================================================================

async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=int(exc.status_code), content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render pydantic failures in the same shape as other 400s."""
    field_errors = []
    for error in exc.errors():
        loc = [str(part) for part in error["loc"] if part not in _LOCATION_PREFIXES]
        field_errors.append(
            FieldError(
                field=".".join(loc) or "body",
                message=error["msg"].removeprefix("Value error, "),
                code=error["type"],
            )
        )

    # A single problem is surfaced directly as the error message
    message = field_errors[0].message if len(field_errors) == 1 else None
    error = ValidationError(message, field_errors=field_errors)
    return JSONResponse(status_code=int(error.status_code), content=error.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": "An unexpected error occurred", "code": "internal_error"},
    )


# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Employee directory with a role-scoped organization hierarchy: "
            "visibility, redaction and structural changes."
        ),
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(employee_router)
    app.include_router(export_router)

    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict:
        return {"status": "healthy", "version": settings.app_version}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "staffdir.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
