"""
Secret Santa - FastAPI Backend
Main application entry point with session sweep, error translation and routing.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings, validate_runtime_settings
from database import engine, Base
import models  # noqa: F401
from routers import health, auth, match, wishlist, admin
from routers.auth_scope import clear_session_cookie
from services.errors import AuthenticationError, SantaError
from services.session_token import run_session_sweep

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def _periodic_session_sweep() -> None:
    interval_minutes = max(int(settings.SESSION_SWEEP_INTERVAL_MINUTES), 0)
    if interval_minutes <= 0:
        return
    while True:
        await asyncio.sleep(interval_minutes * 60)
        await run_session_sweep()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    print("🎅 Starting Secret Santa API...")
    validate_runtime_settings()
    if settings.AUTO_CREATE_DB_SCHEMA:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        print("🗄️ Database schema verified.")
    removed = await run_session_sweep()
    if removed:
        print(f"🧹 Removed {removed} expired sessions at startup.")
    sweep_task = None
    if int(settings.SESSION_SWEEP_INTERVAL_MINUTES) > 0:
        sweep_task = asyncio.create_task(_periodic_session_sweep())
        print(
            "📅 Session sweep loop enabled "
            f"(every {int(settings.SESSION_SWEEP_INTERVAL_MINUTES)} min)."
        )
    yield
    # Shutdown
    if sweep_task is not None:
        sweep_task.cancel()
        try:
            await sweep_task
        except asyncio.CancelledError:
            pass
    print("👋 Shutting down API...")


app = FastAPI(
    title="Secret Santa API",
    description="Gift exchange assignments, wishlists and account administration",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SantaError)
async def santa_error_handler(request: Request, exc: SantaError):
    response = JSONResponse(status_code=exc.status_code, content={"error": exc.message})
    if isinstance(exc, AuthenticationError) and exc.clear_cookie:
        clear_session_cookie(response)
    return response


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(match.router, prefix="/match", tags=["Match"])
app.include_router(wishlist.router, prefix="/wishlist", tags=["Wishlist"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Secret Santa API",
        "version": "1.0.0",
        "status": "running"
    }
