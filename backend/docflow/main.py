"""DocFlow API application.

Routes documents between the district office and its branches. The app
wires the v1 routers, request correlation, CORS, error translation and the
operational endpoints (/health, /ready, /metrics).

Run locally:
    uvicorn docflow.main:app --reload
"""

import os
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .api.v1 import api_router
from .api.v1.errors import register_exception_handlers
from .config import Settings, get_settings
from .dependencies import get_activity_recorder, get_cache_coordinator
from .observability.logging_config import configure_logging, get_logger
from .observability.middleware import REQUEST_ID_HEADER, RequestIDMiddleware
from .observability.router import router as observability_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the effective cache settings at startup; drain the activity queue at shutdown."""
    settings = get_settings()
    cache_settings = get_cache_coordinator().refresh_settings()
    logger.info(
        f"DocFlow API {__version__} starting ({settings.ENVIRONMENT}), "
        f"cache {'enabled' if cache_settings.enabled else 'disabled'}"
    )

    yield

    logger.info("DocFlow API shutting down, flushing activity log")
    get_activity_recorder().close()


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request body/query errors, same envelope as engine errors plus field details."""
    logger.info(f"{request.method} {request.url.path} rejected: validation_error")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "details": jsonable_encoder(exc.errors()),
        },
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Authoritative store failures. Details are logged, never returned."""
    logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "database_error",
            "message": "A database error occurred. Please try again later.",
        },
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

    public_docs = settings.ENVIRONMENT != "production"
    application = FastAPI(
        title="DocFlow API",
        description="Document lifecycle and access control for district and branch offices",
        version=__version__,
        docs_url="/docs" if public_docs else None,
        redoc_url="/redoc" if public_docs else None,
        openapi_url="/openapi.json" if public_docs else None,
        lifespan=lifespan,
    )

    application.add_middleware(RequestIDMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    register_exception_handlers(application)
    application.add_exception_handler(RequestValidationError, validation_exception_handler)
    application.add_exception_handler(SQLAlchemyError, database_exception_handler)

    application.include_router(observability_router)
    application.include_router(api_router)

    @application.get("/", include_in_schema=False)
    async def root() -> dict[str, Any]:
        return {"name": "DocFlow API", "version": __version__, "status": "running"}

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "docflow.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=get_settings().ENVIRONMENT == "development",
    )
