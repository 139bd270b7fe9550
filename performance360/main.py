"""
Performance360 API application.

Docs live at the root (/docs, /openapi.json); every router is mounted under
the API prefix. Middleware order, outermost first:
CORS -> CorrelationId -> Logging -> SecureHeaders.
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional, Union

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

import performance360.models  # noqa: F401  (model registration)
from performance360.core.config import settings
from performance360.core.exceptions import AppException
from performance360.core.limiter import limiter
from performance360.core.logging import sanitize_for_logging, setup_logging
from performance360.core.middleware import CorrelationIdMiddleware, LoggingMiddleware, SecureHeadersMiddleware
from performance360.database import check_connection, init_db
from performance360.routers.api_router import api_router

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} v{settings.version} ({settings.environment})")
    try:
        init_db()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    yield

    logger.info("Shutting down")


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Performance360 - quarterly performance, 360 feedback and attendance compliance",
    docs_url="/docs",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# ============================================================================
# RATE LIMITER
# ============================================================================
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ============================================================================
# MIDDLEWARE STACK (last added runs first)
# ============================================================================
app.add_middleware(SecureHeadersMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[settings.request_id_header, "X-Process-Time"],
)

# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================
def _error_response(status_code: int, errors: List[dict], headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "errors": errors}, headers=headers)


def _field_path(loc) -> str:
    # ("body", "records", 2, "month") -> "records.2.month"
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "unknown"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [{"field": _field_path(error["loc"]), "msg": error["msg"]} for error in exc.errors()]
    logger.warning(
        f"Validation failed on {request.method} {request.url.path}",
        extra={"errors": errors, "body": sanitize_for_logging(exc.body)},
    )
    return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, errors)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    log = logger.info if exc.status_code == 404 else logger.warning
    log(f"{exc.error_code}: {exc.message}", extra={"path": request.url.path})
    return _error_response(exc.status_code, [exc.as_error()])


@app.exception_handler(StarletteHTTPException)
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: Union[HTTPException, StarletteHTTPException]):
    msg = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error_response(exc.status_code, [{"msg": msg}], headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled server error", extra={"path": request.url.path})
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, [{"msg": "An unexpected server error occurred."}]
    )


app.include_router(api_router, prefix=settings.api_prefix)

# ============================================================================
# OPERATIONAL ENDPOINTS (root level)
# ============================================================================
@app.get("/", tags=["Health"])
def root():
    return {"message": "Performance360 API", "version": settings.version, "docs": "/docs"}


@app.get("/health", tags=["Health"])
def health_check():
    """Process is up; does not touch the database."""
    return {
        "status": "up",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.version,
        "environment": settings.environment,
    }


@app.get("/readiness", tags=["Health"])
def readiness_check():
    try:
        check_connection()
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database unavailable")
    return {"status": "ready", "components": {"database": "connected"}}


@app.get("/liveness", tags=["Health"])
def liveness_check():
    return health_check()
