# type: ignore
# pyright: reportGeneralTypeIssues=false
# pyright: reportOptionalMemberAccess=false
"""
Rotation Service
================
Manages duty rotations for projects: project creation with its first
rotation window, assignee/reviewer role sets per window, self-service
account changes and the admin user directory.

Port: 8005
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from rotation_service.controllers import (
    account_controller,
    project_controller,
    system_controller,
    user_controller,
)
from rotation_service.controllers.responses import to_response
from rotation_service.core.config import settings
from rotation_service.core.database import engine
from rotation_service.core.dependencies import close_http_client
from rotation_service.core.errors import ErrorKind, OperationResult, UpstreamError
from rotation_service.core.logging import get_logger
from rotation_service.middleware import MetricsMiddleware, RequestIDMiddleware
from rotation_service.schemas.api import ResultResponse

logger = get_logger("rotation-service")


# ── Lifespan ──────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Verify DB connectivity at startup; release pools on shutdown."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection verified")
    except SQLAlchemyError as exc:
        logger.error("Database connection FAILED — service will start but DB calls will fail: %s", exc)
    yield
    close_http_client()
    engine.dispose()
    logger.info("Connection pools closed — shutting down")


# ── FastAPI App ───────────────────────────────────────────────────────────
app = FastAPI(
    title="Rotation Service",
    description="Project duty rotations, accounts and the admin user directory.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
    responses={
        401: {"model": ResultResponse, "description": "Not authenticated"},
        403: {"model": ResultResponse, "description": "Admin access required"},
        422: {"model": ResultResponse, "description": "Validation error"},
        502: {"model": ResultResponse, "description": "Store or identity provider failure"},
    },
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)


# ── Store / identity failures raised from request dependencies ───────────
@app.exception_handler(UpstreamError)
async def upstream_exception_handler(request: Request, exc: UpstreamError):
    logger.warning(
        "Upstream failure: target=%s, error=%s", exc.target, exc.message,
        extra={"request_id": getattr(request.state, "request_id", None)},
    )
    return to_response(OperationResult.fail(ErrorKind.UPSTREAM_FAILURE, exc.message))


# ── Global exception handler ─────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    req_id = getattr(request.state, "request_id", None)
    logger.exception("Unhandled exception", extra={"request_id": req_id})
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "detail": str(exc), "request_id": req_id},
    )


app.include_router(system_controller.router)
app.include_router(project_controller.router)
app.include_router(account_controller.router)
app.include_router(user_controller.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.SERVICE_PORT, log_level="info")
