"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Annotated, AsyncGenerator

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from bloodbank.api.v1.router import router as api_v1_router
from bloodbank.config import settings
from bloodbank.database import get_session, ping
from bloodbank.domain.clock import utcnow
from bloodbank.logging_config import configure_logging
from bloodbank.middleware import CorrelationIdMiddleware
from bloodbank.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncGenerator[None, None]:
    """Configure application resources on startup."""
    configure_logging(log_level=settings.log_level)
    logger.info("Blood bank API starting")
    yield


app = FastAPI(
    title="Blood Bank Management API",
    description="Donor, blood inventory and request management with FIFO-by-expiry allocation",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Attach correlation ID middleware (must be added before routes)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Correlation-ID"],
    allow_credentials=True,
)

app.include_router(api_v1_router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors in the response envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail)).model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed input is a 400 with the individual validation errors."""
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error="Validation failed",
            details=jsonable_encoder(exc.errors()),
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected becomes a generic 500 without internals."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="An unexpected server error occurred.").model_dump(
            exclude_none=True
        ),
    )


@app.get("/health", tags=["health"])
def health_check(session: Annotated[Session, Depends(get_session)]) -> dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "timestamp": utcnow().isoformat(),
        "database": "connected" if ping(session) else "disconnected",
    }
