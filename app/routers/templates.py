"""
Report template inspection endpoints.

GET /                 — report kinds and whether their templates are present.
GET /{kind}/tags      — {{tags}} in a kind's template vs. its schema.
"""
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from app.dependencies.services import get_catalog, get_template_filler
from app.errors import MalformedTemplateError, TemplateNotFoundError, UnknownReportKindError
from app.models.report_kinds import ReportCatalog
from app.models.schemas import ReportKindResponse, TemplateTagsResponse
from app.services.template_filler import TemplateFiller

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=List[ReportKindResponse])
async def list_report_kinds(
    catalog: ReportCatalog = Depends(get_catalog),
    filler: TemplateFiller = Depends(get_template_filler),
) -> List[ReportKindResponse]:
    """List the report kinds accepted by ``POST /api/generate``."""
    return [
        ReportKindResponse(
            key=kind.key,
            label=kind.label,
            assessment_type=kind.assessment_type,
            template_filename=kind.template_filename,
            output_filename=kind.output_filename,
            template_available=filler.template_exists(kind.template_filename),
            is_default=kind.key == catalog.default_key,
            schema_keys=list(kind.schema.keys),
        )
        for kind in catalog
    ]


@router.get("/{kind}/tags", response_model=TemplateTagsResponse)
async def template_tags(
    kind: str,
    catalog: ReportCatalog = Depends(get_catalog),
    filler: TemplateFiller = Depends(get_template_filler),
) -> TemplateTagsResponse:
    """
    Report the tags detected in a kind's template.

    Use this after editing a template in Word to check that every schema
    field still has a placeholder and that no placeholder is misspelt.
    """
    try:
        report_kind = catalog.resolve(kind)
    except UnknownReportKindError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Report kind {kind!r} not found.",
        )

    try:
        tags = filler.list_tags(report_kind.template_filename)
    except TemplateNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Template {report_kind.template_filename!r} not found.",
        )
    except MalformedTemplateError as exc:
        logger.error("Template %r is malformed: %s", report_kind.template_filename, exc.details)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Template {report_kind.template_filename!r} is not a valid .docx file.",
        )

    tag_set = set(tags)
    schema = report_kind.schema
    return TemplateTagsResponse(
        key=report_kind.key,
        template_filename=report_kind.template_filename,
        tags=tags,
        missing_in_template=[key for key in schema.keys if key not in tag_set],
        unknown_tags=[tag for tag in tags if tag not in schema],
    )
