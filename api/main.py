"""
FastAPI main application for the Library Catalog API.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import authors, books, categories
from api.config import config as api_config
from api.database import CatalogService
from api.models import HealthResponse, failure
from catalog.database import CatalogDatabase
from catalog.errors import CatalogError, ConflictError, NotFoundError, ValidationFailure
from utilities.config import config
from utilities.logger import AccessLogger, setup_logging

logger = structlog.get_logger(__name__)
access_logger = AccessLogger()

ERROR_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationFailure: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_400_BAD_REQUEST,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store at startup and close it at shutdown."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger.info("Starting Library Catalog API")

    database = CatalogDatabase.from_config(config)
    try:
        await database.connect()
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        raise

    app.state.database = database
    app.state.catalog_service = CatalogService(
        database,
        default_page_size=config.default_page_size,
        max_page_size=config.max_page_size,
    )

    yield

    logger.info("Shutting down Library Catalog API")
    await database.disconnect()


def create_app(lifespan_handler=lifespan) -> FastAPI:
    """
    Build the application.

    Args:
        lifespan_handler: Startup/shutdown context; tests pass their own to
            avoid connecting to MongoDB.
    """
    app = FastAPI(
        title=api_config.api_title,
        description="""
    REST API for a library catalog.

    ## Features

    * **Authors**: CRUD, search, nationality listings, per-author statistics
    * **Books**: CRUD, filtering, full-text search, stock and rating updates
    * **Categories**: Grouping of books
    * **Statistics**: Catalog overview, top-rated books per category, top authors
    * **Pagination**: `page` and `limit` on every listing

    Every response uses the envelope `{success, data, message?, totalPages?, currentPage?, total?, count?}`.
    """,
        version=api_config.api_version,
        lifespan=lifespan_handler,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_config.cors_origins,
        allow_credentials=api_config.cors_allow_credentials,
        allow_methods=api_config.cors_allow_methods,
        allow_headers=api_config.cors_allow_headers,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            access_logger.log_failure(request.method, request.url.path, str(exc))
            raise
        access_logger.log_request(
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    @app.exception_handler(CatalogError)
    async def catalog_exception_handler(request: Request, exc: CatalogError):
        """Map expected catalog failures onto 400/404 envelopes."""
        status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
        errors = [error.dict() for error in getattr(exc, "errors", [])] or None
        return JSONResponse(status_code=status_code, content=failure(exc.message, errors=errors))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions such as unknown routes."""
        return JSONResponse(
            status_code=exc.status_code,
            content=failure(str(exc.detail)),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Malformed request bodies get the same envelope as other validation failures."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=failure("Invalid request body"),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Log unexpected failures; only debug mode echoes the error text."""
        logger.error("Unhandled exception", error=str(exc), path=request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=failure("Server Error", error=str(exc) if api_config.debug else None),
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint."""
        database: Optional[CatalogDatabase] = getattr(request.app.state, "database", None)
        db_status = "unavailable"
        if database is not None:
            health_info = await database.health_check()
            db_status = health_info.get("status", "unknown")

        return HealthResponse(
            status="healthy" if db_status == "healthy" else "degraded",
            timestamp=datetime.utcnow(),
            version=api_config.api_version,
            database_status=db_status
        )

    app.include_router(books.router, prefix="/api/books", tags=["Books"])
    app.include_router(authors.router, prefix="/api/authors", tags=["Authors"])
    app.include_router(categories.router, prefix="/api/categories", tags=["Categories"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.debug,
        log_level=config.log_level.lower()
    )
