"""Report kinds and API schemas for the NeuroSense report builder."""
from app.models.report_kinds import (
    ADHD_SCHEMA,
    AUTISM_SCHEMA,
    ReportCatalog,
    ReportKind,
    Schema,
    build_default_catalog,
)
from app.models.schemas import (
    ErrorResponse,
    HealthCheckResponse,
    ReportKindResponse,
    TemplateTagsResponse,
)

__all__ = [
    # Report kinds
    "ADHD_SCHEMA",
    "AUTISM_SCHEMA",
    "ReportCatalog",
    "ReportKind",
    "Schema",
    "build_default_catalog",
    # Pydantic schemas
    "ErrorResponse",
    "HealthCheckResponse",
    "ReportKindResponse",
    "TemplateTagsResponse",
]
