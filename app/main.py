"""
Main FastAPI application for the NeuroSense report builder.
Handles CORS, request logging middleware, lifespan events, and router registration.
"""
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.dependencies.services import get_catalog
from app.errors import ReportBuilderError
from app.routers import health, reports, templates
from app.services.template_filler import TemplateFiller

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
# httpx logs full request URLs at INFO, and the Gemini key is a query param
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Startup / shutdown helpers
# ---------------------------------------------------------------------------

def _check_gemini_key() -> bool:
    """Log whether a Gemini key is configured.  Never raises."""
    if settings.GEMINI_API_KEY:
        logger.info("✓ GEMINI_API_KEY configured (model: %s)", settings.GEMINI_MODEL)
        return True
    logger.warning(
        "⚠ GEMINI_API_KEY is not set — POST /api/generate will return 500 "
        "until it is configured"
    )
    return False


def _check_templates() -> dict:
    """
    Verify each report kind's template exists and lists its tags.
    Returns {kind: available}.  Never raises — warnings are logged instead.
    """
    filler = TemplateFiller(settings.TEMPLATE_DIR)
    result = {}
    logger.info("  Template directory: %s", Path(settings.TEMPLATE_DIR).resolve())

    for kind in get_catalog():
        if not filler.template_exists(kind.template_filename):
            logger.warning(
                "  ⚠ Template '%s' for %s not found — run: python generate_templates.py",
                kind.template_filename,
                kind.key,
            )
            result[kind.key] = False
            continue

        try:
            tags = set(filler.list_tags(kind.template_filename))
        except ReportBuilderError as exc:
            logger.error("  ✗ Template '%s' unreadable: %s", kind.template_filename, exc.details)
            result[kind.key] = False
            continue

        result[kind.key] = True
        missing = [key for key in kind.schema.keys if key not in tags]
        logger.info(
            "  ✓ Template '%s' (%d tags)", kind.template_filename, len(tags)
        )
        if missing:
            logger.warning(
                "    %d schema field(s) have no tag in '%s': %s",
                len(missing), kind.template_filename, missing[:10],
            )
    return result


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting NeuroSense report builder …")
    logger.info("=" * 60)

    # 1 — Report catalog (required; raises on a bad DEFAULT_REPORT_KIND)
    catalog = get_catalog()
    logger.info("✓ Report kinds: %s (default: %s)", ", ".join(catalog.keys()), catalog.default_key)

    # 2 — Gemini key (optional at startup; requests fail until it is set)
    _check_gemini_key()

    # 3 — Templates (optional; logs warnings but continues)
    _check_templates()

    logger.info("=" * 60)
    logger.info("  Report builder ready on http://%s:%d", settings.HOST, settings.PORT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("  Health     : http://%s:%d/api/health", settings.HOST, settings.PORT)
    logger.info("=" * 60)

    yield  # ← server is running

    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="NeuroSense Report Builder API",
    description=(
        "**NeuroSense** — AI-assisted clinical report generation.\n\n"
        "Upload a CYP assessment questionnaire; Gemini extracts the report "
        "fields and the matching Word template is filled in.\n\n"
        "Key endpoints:\n"
        "- `POST /api/generate` — questionnaire in, filled .docx out\n"
        "- `GET  /api/templates` — available report kinds\n"
        "- `GET  /api/templates/{kind}/tags` — check a template's placeholders\n"
    ),
    version="0.1.0",
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
    # Browsers only expose listed headers to scripts
    expose_headers=["Content-Disposition", "X-NeuroSense-JSON"],
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
    if request.url.path not in ("/api/health/", "/api/health", "/"):
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

@app.exception_handler(ReportBuilderError)
async def report_builder_error_handler(request: Request, exc: ReportBuilderError):
    """Structured ``{error, details}`` body for expected request failures."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "%s on %s %s: %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(exc.to_body()),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
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
        content={"error": "Internal error", "details": str(exc)},
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(health.router,     prefix="/api/health",    tags=["Health"])
app.include_router(reports.router,    prefix="/api",           tags=["Reports"])
app.include_router(templates.router,  prefix="/api/templates", tags=["Templates"])


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root — returns basic service info."""
    return {
        "name": "NeuroSense Report Builder API",
        "version": "0.1.0",
        "description": "AI-assisted clinical report generation",
        "docs": "/docs",
        "health": "/api/health",
        "endpoints": {
            "generate": "/api/generate",
            "templates": "/api/templates",
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
