"""
Service providers for FastAPI routes.

Settings and the report catalog are built once per process; services are
constructed from them and handed to routes through ``Depends`` so tests can
swap any of them via ``app.dependency_overrides``.
"""
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from app.config import Settings, settings
from app.models.report_kinds import ReportCatalog, build_default_catalog
from app.services.gemini_client import GeminiClient
from app.services.report_pipeline import ReportPipeline
from app.services.template_filler import TemplateFiller


def get_settings() -> Settings:
    return settings


@lru_cache(maxsize=1)
def get_catalog() -> ReportCatalog:
    """The report catalog, built on first use (at startup via the lifespan)."""
    return build_default_catalog(settings.DEFAULT_REPORT_KIND)


def get_template_filler(
    app_settings: Settings = Depends(get_settings),
) -> TemplateFiller:
    return TemplateFiller(app_settings.TEMPLATE_DIR)


def get_gemini_client(
    app_settings: Settings = Depends(get_settings),
) -> GeminiClient:
    return GeminiClient(
        api_key=app_settings.GEMINI_API_KEY,
        base_url=app_settings.GEMINI_BASE_URL,
        model=app_settings.GEMINI_MODEL,
        timeout=float(app_settings.GEMINI_TIMEOUT),
        temperature=app_settings.GEMINI_TEMPERATURE,
    )


def get_report_pipeline(
    catalog: ReportCatalog = Depends(get_catalog),
    gemini: GeminiClient = Depends(get_gemini_client),
    filler: TemplateFiller = Depends(get_template_filler),
) -> ReportPipeline:
    return ReportPipeline(catalog=catalog, gemini=gemini, filler=filler)
