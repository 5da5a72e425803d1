import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Any
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from hatchwatch.config import settings
from hatchwatch.routers import alerts_router, charts_router, cycles_router, devices_router, live_router, state_router
from hatchwatch.routers.alerts import limiter
from hatchwatch.services.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger("hatchwatch")
logging.basicConfig(level=settings.log_level.upper())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan for startup/shutdown events."""
    start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(
    title="Hatchwatch API",
    description="Incubator monitoring: device status, charts, alert log and incubation cycles",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-User-Id", "X-Request-ID"],
)


def _json(data: dict[str, Any]) -> str:
    return json.dumps(data, default=str)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """Backend failures become a displayable message instead of a 500 trace."""
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": f"Database unavailable: {exc.__class__.__name__}"})


@app.middleware("http")
async def structured_logging_middleware(request: Request, call_next):
    start = time.perf_counter()
    req_id = request.headers.get("X-Request-ID", str(uuid4()))
    request.state.request_id = req_id

    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["X-Request-ID"] = req_id
        return response
    finally:
        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.info(_json({
            "request_id": req_id,
            "path": request.url.path,
            "method": request.method,
            "status": status_code,
            "duration_ms": duration_ms,
            "user": request.headers.get("X-User-Id"),
        }))


# Include routers
app.include_router(devices_router)
app.include_router(state_router)
app.include_router(charts_router)
app.include_router(alerts_router)
app.include_router(cycles_router)
app.include_router(live_router)

Instrumentator().instrument(app).expose(app, include_in_schema=False, should_gzip=True)


@app.get("/health")
def health_check():
    """Health check endpoint for Docker."""
    return {"status": "healthy"}


@app.get("/")
def root():
    """Root endpoint with API information."""
    return {
        "name": "Hatchwatch API",
        "version": "1.0.0",
        "docs": "/docs",
        "devices": "/devices",
        "live": "/ws/devices/{device_id}",
    }
