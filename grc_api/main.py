"""
GRC Platform API -- Application entry point.

Run with:
    uvicorn grc_api.main:app --reload

Then open http://localhost:8000/docs for the interactive Swagger UI.

This file:
  1. Configures logging from LOG_LEVEL
  2. Creates the FastAPI application with permissive CORS
  3. Mounts one router per resource (events, risk, scoring, travel,
     audit, notifications, alerts, webhooks)
  4. Turns every error into the standard {success, data, error, timestamp}
     envelope
  5. Defines the health check endpoint
"""

import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from grc_api import store
from grc_api.models.schemas import ApiResponse, fail, ok
from grc_api.routes import alerts, audit, events, notifications, risk, scoring, travel, webhooks

VERSION = "0.1.0"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Create the FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="GRC Platform API",
    version=VERSION,
    description=(
        "Governance, risk and compliance backend.\n\n"
        "---\n\n"
        "## Core Endpoints\n\n"
        "| Endpoint | Purpose |\n"
        "|----------|--------|\n"
        "| `POST /api/risk-scoring` | Residual risk score for one entity |\n"
        "| `POST /api/scoring` | Score a framework assessment |\n"
        "| `GET /api/travel-risk/{code}` | Travel advisory risk for a country |\n"
        "| `POST /api/events` | Publish a platform event |\n"
        "| `POST /api/audit/enhanced` | Audit entry with hashed evidence |\n"
        "| `GET /api/notifications` | A user's notifications |\n"
        "| `POST /api/webhooks/events` | Airtable, Slack and generic webhooks |\n\n"
        "---\n\n"
        "**Status:** in-memory only. Every store is lost on restart."
    ),
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(events.router)
app.include_router(risk.router)
app.include_router(scoring.router)
app.include_router(travel.router)
app.include_router(audit.router)
app.include_router(notifications.router)
app.include_router(alerts.router)
app.include_router(webhooks.router)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=fail(message).model_dump(mode="json"))


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
        for err in exc.errors()
    )
    return _error(400, f"Invalid request: {problems}")


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, f"Internal error: {exc}")


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get(
    "/api/health",
    response_model=ApiResponse,
    summary="Health check",
    description="Status, version and the size of every in-memory store.",
    tags=["System"],
)
async def health() -> ApiResponse:
    return ok({
        "status": "healthy",
        "version": VERSION,
        "stores": store.sizes(),
    })
