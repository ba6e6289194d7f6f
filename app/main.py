"""
Main FastAPI application for the mind map backend.
Handles CORS, request logging middleware, lifespan events, error mapping, and
router registration.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import close_db, init_db
from app.routers import health, mindmaps
from app.services.errors import MindMapError

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

APP_NAME = "MindMap API"
APP_VERSION = "2.0.0"


# ---------------------------------------------------------------------------
# Startup / shutdown helpers
# ---------------------------------------------------------------------------

async def _check_database() -> bool:
    """Initialise DB tables and verify the connection.  Returns True on success."""
    try:
        await init_db()
        logger.info("✓ Database connection OK")
        return True
    except Exception as exc:
        logger.error("✗ Database connection failed: %s", exc)
        raise


def _check_llm() -> bool:
    """Warn (never raise) when no LLM API key is configured."""
    if settings.llm_configured():
        logger.info(
            "✓ LLM endpoint: %s (model '%s')", settings.LLM_BASE_URL, settings.LLM_MODEL
        )
        return True
    logger.warning(
        "⚠ LLM_API_KEY is not set — generation requests will fail until it is configured"
    )
    return False


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting %s …", APP_NAME)
    logger.info("=" * 60)

    # 1 — Database (required; raises on failure)
    await _check_database()

    # 2 — LLM configuration (optional; logs a warning)
    _check_llm()

    logger.info("=" * 60)
    logger.info("  %s ready on http://%s:%d", APP_NAME, settings.HOST, settings.PORT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("  Health     : http://%s:%d/api/health", settings.HOST, settings.PORT)
    logger.info("=" * 60)

    yield  # ← server is running

    logger.info("Shutting down %s …", APP_NAME)
    await close_db()
    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title=APP_NAME,
    description=(
        "AI-generated mind maps.\n\n"
        "Send a prompt (and optionally a PDF/DOCX), get back a positioned "
        "React Flow graph of topics, subtopics, points and subpoints.\n\n"
        "Key endpoints:\n"
        "- `POST /api/mindmaps/generate` — generate a mind map\n"
        "- `POST /api/mindmaps` — save a generated map\n"
        "- `GET  /api/mindmaps` — list saved maps\n"
        "- `GET  /api/mindmaps/{id}` — fetch a saved map\n"
    ),
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request / response logging middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with method, path, status code, and elapsed time.
    Attaches an ``X-Process-Time`` header (milliseconds) to every response.
    """
    t0 = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

    # Skip noisy health-check polling from the frontend
    if request.url.path not in ("/api/health", "/"):
        logger.info(
            "%s %s → %d  (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )

    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

def _error_body(request: Request, detail: str, **extra) -> dict:
    return {
        "detail": detail,
        **extra,
        "path": str(request.url.path),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.exception_handler(MindMapError)
async def mindmap_error_handler(request: Request, exc: MindMapError):
    """Return a structured JSON error carrying the failure's ``kind``."""
    logger.warning(
        "Generation failed on %s %s: [%s] %s",
        request.method,
        request.url.path,
        exc.kind,
        exc.message,
    )
    return JSONResponse(
        status_code=exc.http_status,
        content=_error_body(request, exc.message, kind=exc.kind, details=exc.details),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return a structured JSON error for any unhandled exception."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, "Internal server error", error=str(exc)),
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(health.router,    prefix="/api/health",   tags=["Health"])
app.include_router(mindmaps.router,  prefix="/api/mindmaps", tags=["Mind maps"])


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root — returns basic service info."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "description": "AI mind map generation backend",
        "docs": "/docs",
        "health": "/api/health",
        "endpoints": {
            "generate": "/api/mindmaps/generate",
            "mindmaps": "/api/mindmaps",
            "defaults": "/api/mindmaps/settings/defaults",
        },
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level="info",
    )
