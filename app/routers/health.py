"""
Health check endpoint.
"""
from fastapi import APIRouter, Depends
from datetime import datetime, timezone
import logging

from app.config import Settings
from app.dependencies.services import get_catalog, get_settings, get_template_filler
from app.models.report_kinds import ReportCatalog
from app.models.schemas import HealthCheckResponse
from app.services.template_filler import TemplateFiller

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=HealthCheckResponse)
async def health_check(
    app_settings: Settings = Depends(get_settings),
    catalog: ReportCatalog = Depends(get_catalog),
    filler: TemplateFiller = Depends(get_template_filler),
):
    """
    Health check endpoint to verify system status.

    Does not call Gemini; only checks that a key is configured.

    Returns:
        HealthCheckResponse with Gemini configuration and template availability
    """
    gemini_configured = bool(app_settings.GEMINI_API_KEY)
    templates = {
        kind.key: filler.template_exists(kind.template_filename) for kind in catalog
    }

    if not gemini_configured:
        logger.warning("Health check: GEMINI_API_KEY is not set")
    missing = [key for key, ok in templates.items() if not ok]
    if missing:
        logger.warning("Health check: templates missing for %s", missing)

    overall_status = "healthy" if gemini_configured and not missing else "degraded"

    return HealthCheckResponse(
        status=overall_status,
        gemini_configured=gemini_configured,
        templates=templates,
        timestamp=datetime.now(timezone.utc)
    )
