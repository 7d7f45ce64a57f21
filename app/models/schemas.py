"""
Pydantic schemas for request/response validation.
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime


# Error Schemas
class ErrorResponse(BaseModel):
    """Body of every structured error response."""

    error: str
    details: Optional[Any] = None


# Report Kind Schemas
class ReportKindResponse(BaseModel):
    """A report kind and the availability of its template."""

    key: str
    label: str
    assessment_type: str
    template_filename: str
    output_filename: str
    template_available: bool
    is_default: bool = False
    schema_keys: List[str] = Field(default_factory=list)


class TemplateTagsResponse(BaseModel):
    """Tags found in a template compared against the report kind's schema."""

    key: str
    template_filename: str
    tags: List[str]
    missing_in_template: List[str] = Field(
        default_factory=list,
        description="Schema keys with no {{tag}} in the template",
    )
    unknown_tags: List[str] = Field(
        default_factory=list,
        description="Template tags that are not schema keys (always rendered empty)",
    )


# Health Schemas
class HealthCheckResponse(BaseModel):
    """Schema for health check response."""

    status: str
    gemini_configured: bool
    templates: Dict[str, bool]
    timestamp: datetime
