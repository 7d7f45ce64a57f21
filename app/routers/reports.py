"""
Report generation endpoint.

POST /generate — questionnaire upload in, filled .docx report out.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import Response

from app.config import Settings
from app.dependencies.services import get_report_pipeline, get_settings
from app.errors import ConfigurationError, MissingUploadError, UploadTooLargeError
from app.models.schemas import ErrorResponse
from app.services.report_pipeline import ReportPipeline, SourceDocument

logger = logging.getLogger(__name__)

router = APIRouter()

DOCX_MEDIA_TYPE = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
)
DIAGNOSTIC_HEADER = "X-NeuroSense-JSON"

# encodeURIComponent leaves these unescaped as well
_URI_COMPONENT_SAFE = "!'()*~"


@router.post(
    "/generate",
    response_class=Response,
    responses={
        200: {"content": {DOCX_MEDIA_TYPE: {}}, "description": "Filled report"},
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def generate_report(
    file: Optional[UploadFile] = File(None),
    notes: str = Form(""),
    template: str = Form(""),
    app_settings: Settings = Depends(get_settings),
    pipeline: ReportPipeline = Depends(get_report_pipeline),
) -> Response:
    """
    Extract the uploaded questionnaire with Gemini and fill the report template.

    - ``file``: questionnaire (PDF, DOCX, image, …), required
    - ``notes``: free-text clinician notes appended to the prompt
    - ``template``: report kind, ``cyp_adhd`` (default) or ``cyp_autism``

    The merged record is echoed URL-encoded in the ``X-NeuroSense-JSON`` header.
    """
    if not pipeline.gemini.is_configured:
        raise ConfigurationError("Missing GEMINI_API_KEY")

    if file is None or not file.filename:
        raise MissingUploadError("No file provided")

    data = await _read_upload(file, app_settings.MAX_UPLOAD_SIZE)
    if not data:
        raise MissingUploadError("No file provided", details="Uploaded file is empty.")

    source = SourceDocument(
        content=data,
        filename=file.filename,
        mime_type=file.content_type or "application/octet-stream",
    )
    report = await pipeline.run(source, notes=notes, selector=template)

    response = Response(
        content=report.content,
        media_type=DOCX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{report.filename}"'},
    )
    if app_settings.DIAGNOSTIC_HEADER_ENABLED:
        attach_diagnostic_header(response, report.record)
    return response


def attach_diagnostic_header(response: Response, record: Dict[str, Any]) -> bool:
    """
    Best effort: set the URL-encoded record as a response header.

    A failure is logged and reported through the return value; the response
    is still sent.
    """
    try:
        payload = json.dumps(record, ensure_ascii=False, separators=(",", ":"))
        response.headers[DIAGNOSTIC_HEADER] = quote(payload, safe=_URI_COMPONENT_SAFE)
    except (TypeError, ValueError) as exc:
        logger.warning("Failed to attach diagnostic header: %s", exc)
        return False
    return True


async def _read_upload(file: UploadFile, limit: int) -> bytes:
    """Read the upload in 1 MB slices, enforcing *limit* bytes."""
    parts = []
    size = 0
    while True:
        chunk = await file.read(1024 * 1024)
        if not chunk:
            break
        size += len(chunk)
        if size > limit:
            raise UploadTooLargeError(
                "File too large",
                details=f"File exceeds the {limit:,} byte size limit.",
            )
        parts.append(chunk)
    logger.info("Received %r (%s bytes)", file.filename, f"{size:,}")
    return b"".join(parts)
