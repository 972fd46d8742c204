"""
Pharmacy Inventory Backend.

ARCHITECTURE:
- FastAPI routes under /api, bearer JWT auth with role permissions
- SQLAlchemy over SQLite (development) or PostgreSQL
- Reorder sweep on an asyncio timer inside the app lifespan
- WebSocket /ws pushes "refetch" events after every mutation
- Optional Groq chat completions for the inventory chatbot
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ai.groq_client import build_completion_client
from app.agent.reorder_scheduler import start_reorder_scheduler, stop_reorder_scheduler
from app.api.routes import analytics, auth, chatbot, medicines, prescriptions, realtime, reorders
from app.core.config import settings
from app.core.exceptions import PharmacyError
from app.core.logging_config import setup_logging
from app.db.init_db import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    1. Configure logging
    2. Create tables (and the bootstrap admin)
    3. Build the chat completion client, if configured
    4. Start the reorder sweep scheduler

    Shutdown: stop the scheduler.
    """
    setup_logging()
    logger.info("[*] Initializing database...")
    init_db()
    logger.info("[OK] Database initialized")

    app.state.completion_client = build_completion_client(settings)

    if settings.REORDER_SWEEP_ENABLED:
        start_reorder_scheduler()
    else:
        logger.warning("[WARN] Reorder sweep scheduler disabled")

    yield

    if settings.REORDER_SWEEP_ENABLED:
        stop_reorder_scheduler()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Medicines, prescriptions, restocking and demand analytics.",
    version="0.1.0",
    lifespan=lifespan,
)

# Only the configured frontend origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.CORS_ORIGIN],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
    ],
    max_age=600,
    expose_headers=["Content-Type"],
)


@app.middleware("http")
async def log_and_secure(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f}ms)")

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(PharmacyError)
async def pharmacy_error_handler(request: Request, exc: PharmacyError):
    body = {"success": False, "message": exc.message}
    if exc.errors:
        body["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({"success": False, "message": "Validation failed", "errors": errors}),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    body = {"success": False, "message": "An internal error occurred. Please try again later."}
    if settings.DEBUG:
        body["error"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


api = settings.API_PREFIX
app.include_router(auth.router, prefix=f"{api}/auth", tags=["auth"])
app.include_router(medicines.router, prefix=f"{api}/medicines", tags=["medicines"])
app.include_router(prescriptions.router, prefix=f"{api}/prescriptions", tags=["prescriptions"])
app.include_router(reorders.router, prefix=f"{api}/reorders", tags=["reorders"])
app.include_router(analytics.router, prefix=f"{api}/analytics", tags=["analytics"])
app.include_router(chatbot.router, prefix=f"{api}/chatbot", tags=["chatbot"])
app.include_router(realtime.router, tags=["realtime"])


@app.get("/health")
def health():
    return {
        "success": True,
        "message": "Server is running",
        "timestamp": datetime.utcnow().isoformat(),
    }
