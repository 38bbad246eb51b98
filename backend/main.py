"""
Course Marketplace Checkout — FastAPI Application

Razorpay order creation, payment signature verification and idempotent
enrollment commit for paid courses, plus free-course enrollment.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from domain.errors import DomainError
from routes import enrollments, health, payments

# ── Logging ─────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: validate settings, create DB tables."""
    # Ensure data/ directory exists for SQLite
    os.makedirs("data", exist_ok=True)

    settings.validate_production_settings()

    from database import init_db
    await init_db()
    logger.info("Database initialized")

    yield  # app runs here

    from database import engine
    await engine.dispose()
    logger.info("Shutting down")


# ── App Factory ─────────────────────────────────────────────────────

app = FastAPI(
    title="Course Marketplace Checkout API",
    description="Razorpay checkout, payment verification and enrollment commit",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routes ──────────────────────────────────────────────────────────

app.include_router(health.router)
app.include_router(payments.router)
app.include_router(enrollments.router)


# ── Exception Handlers ──────────────────────────────────────────────


def _error_body(message: str, code: str) -> dict:
    return {"success": False, "error": message, "code": code}


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Catch-all for unhandled exceptions.

    Never return raw exception details to clients; the full traceback is
    logged server-side.
    """
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=_error_body("Internal server error", "internal_server_error"),
    )


@app.exception_handler(DomainError)
async def domain_exception_handler(request, exc: DomainError):
    """Structured errors raised by services: { success, error, code }."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.code),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Standardize plain HTTPException responses for frontend consumers."""
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(message, "http_error"),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    """
    Malformed bodies are InvalidRequest (400), not FastAPI's default 422.
    """
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        loc = [str(part) for part in first.get("loc", ()) if part != "body"]
        field = loc[-1] if loc else None
        if first.get("type") == "json_invalid":
            message = "Invalid JSON payload"
        elif field and first.get("type") == "missing":
            message = f"{field} is required"
        elif field:
            message = f"Invalid {field}: {first.get('msg', 'invalid value')}"
    logger.info(f"Rejected request on {request.url.path}: {message}")
    return JSONResponse(
        status_code=400,
        content=_error_body(message, "invalid_request"),
    )


# ── Entrypoint ──────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
