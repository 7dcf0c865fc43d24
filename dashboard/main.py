"""
Content Dashboard - Main Application

FastAPI application that serves:
- The authenticated ``/dashboard`` API over sections and records
- Uploaded files (read-only) under ``/uploads``
- Sign in / sign out with a signed session cookie
- Health check endpoint

All per-app settings travel in a ``DashboardContext`` stored on
``app.state``; pass one to ``create_app`` to run against other paths.
"""

import sys
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Form, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger

from dashboard.auth import (
    SIGN_IN_PATH,
    auth_required,
    clear_session_cookie,
    get_current_user,
    set_session_cookie,
    verify_credentials,
)
from dashboard.config import (
    APP_ENV,
    APP_HOST,
    APP_PORT,
    APP_VERSION,
    DEBUG,
    LOG_LEVEL,
    DashboardContext,
    ensure_directories,
)
from dashboard.database import init_db
from dashboard.routes.dashboard import router as dashboard_router

# ---------------------------------------------------------------------------
# Logging setup - stdout only
# ---------------------------------------------------------------------------
logger.remove()

logger.add(
    sys.stdout,
    level="DEBUG" if DEBUG else LOG_LEVEL,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    colorize=True,
)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    On startup:
        1. Create the data and uploads directories
        2. Initialize the SQLite database
    """
    context: DashboardContext = app.state.context
    logger.info("🚀 Starting Content Dashboard v{}", APP_VERSION)
    logger.info("📋 Environment: {} | Debug: {}", APP_ENV, DEBUG)

    ensure_directories(context)
    logger.info("📁 Uploads directory: {}", context.uploads_dir)

    try:
        init_db(context.db_path)
    except Exception as e:
        logger.critical("❌ Database initialization failed: {}", e)
        raise

    if not context.auth_enabled:
        logger.warning("⚠️ AUTH_PASSWORD is not set - dashboard authentication is disabled")

    logger.success("✅ Application ready - listening on {}:{}", APP_HOST, APP_PORT)

    yield

    logger.info("🛑 Shutting down Content Dashboard...")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
def create_app(context: Optional[DashboardContext] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    context = context or DashboardContext.from_env()

    app = FastAPI(
        title="Content Dashboard",
        description="Admin dashboard over schema-defined content sections and records.",
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if DEBUG else None,
        redoc_url="/redoc" if DEBUG else None,
    )
    app.state.context = context

    # StaticFiles needs the directory to exist when mounted
    ensure_directories(context)
    app.mount("/uploads", StaticFiles(directory=str(context.uploads_dir)), name="uploads")

    # ------------------------------------------------------------------
    # Auth middleware
    # ------------------------------------------------------------------
    @app.middleware("http")
    async def require_session(request: Request, call_next):
        """Redirect unauthenticated requests to the sign-in route."""
        if auth_required(request, context):
            if request.method != "GET":
                return JSONResponse(
                    status_code=401,
                    content={"detail": "Authentication required"},
                )
            return RedirectResponse(url=SIGN_IN_PATH, status_code=302)
        return await call_next(request)

    # ------------------------------------------------------------------
    # Request logging middleware
    # ------------------------------------------------------------------
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every incoming HTTP request with timing information."""
        start = time.time()
        try:
            response = await call_next(request)
        except Exception as exc:
            duration = round(time.time() - start, 3)
            logger.error(
                "❌ {method} {path} - unhandled error after {duration}s: {exc}",
                method=request.method,
                path=request.url.path,
                duration=duration,
                exc=exc,
            )
            raise

        duration = round(time.time() - start, 3)
        status = response.status_code
        if status >= 500:
            log = logger.error
        elif status >= 400:
            log = logger.warning
        elif request.url.path.startswith("/uploads"):
            log = logger.debug
        else:
            log = logger.info
        log(
            "📤 {method} {path} - {status} [{duration}s]",
            method=request.method,
            path=request.url.path,
            status=status,
            duration=duration,
        )
        return response

    # ------------------------------------------------------------------
    # Health, sign in / sign out
    # ------------------------------------------------------------------
    @app.get("/health")
    async def health_check():
        return {
            "status": "ok" if context.db_path.exists() else "degraded",
            "version": APP_VERSION,
        }

    @app.get("/")
    async def index():
        return RedirectResponse(url="/dashboard/", status_code=302)

    @app.get(SIGN_IN_PATH)
    async def sign_in_page(request: Request):
        if get_current_user(request):
            return RedirectResponse(url="/dashboard/", status_code=302)
        return {"title": "Sign In", "action": SIGN_IN_PATH}

    @app.post(SIGN_IN_PATH)
    async def sign_in(email: str = Form(...), password: str = Form(...)):
        if verify_credentials(email, password, context):
            logger.info("🔓 {} signed in", email)
            response = RedirectResponse(url="/dashboard/", status_code=303)
            set_session_cookie(response, email.strip().lower(), context)
            return response

        logger.warning("🔒 Failed sign-in attempt for '{}'", email)
        return JSONResponse(
            status_code=401,
            content={"title": "Sign In", "error": "Invalid email or password", "email": email},
        )

    @app.get("/dashboard/sign_out")
    async def sign_out(request: Request):
        user = get_current_user(request)
        if user:
            logger.info("🔒 {} signed out", user)
        response = RedirectResponse(url=SIGN_IN_PATH, status_code=302)
        clear_session_cookie(response)
        return response

    app.include_router(dashboard_router)

    return app


# ---------------------------------------------------------------------------
# Direct execution (development)
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "dashboard.main:create_app",
        factory=True,
        host=APP_HOST,
        port=APP_PORT,
        reload=DEBUG,
        log_level="debug" if DEBUG else "info",
    )
