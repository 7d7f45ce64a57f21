"""
Error taxonomy for report generation.

Every error carries the HTTP status it maps to; ``app.main`` converts them
into ``{"error": ..., "details": ...}`` JSON bodies.
"""
from __future__ import annotations

from typing import Any, Optional

from fastapi import status


class ReportBuilderError(Exception):
    """Base class for all expected request failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message

    def to_body(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


# Configuration ----------------------------------------------------------------

class ConfigurationError(ReportBuilderError):
    """Missing credentials or other server-side misconfiguration."""


class UnknownReportKindError(ReportBuilderError):
    """The report-kind selector does not name a known schema."""

    status_code = status.HTTP_400_BAD_REQUEST


# Input ------------------------------------------------------------------------

class MissingUploadError(ReportBuilderError):
    status_code = status.HTTP_400_BAD_REQUEST


class UploadTooLargeError(ReportBuilderError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE


# Upstream / parse ---------------------------------------------------------------

class UpstreamError(ReportBuilderError):
    """Gemini returned a non-success response or could not be reached."""


class ModelOutputParseError(ReportBuilderError):
    """Model output is not a JSON object, even after fence stripping."""


# Template -----------------------------------------------------------------------

class TemplateNotFoundError(ReportBuilderError, FileNotFoundError):
    """The template name does not resolve to a readable file."""


class MalformedTemplateError(ReportBuilderError):
    """The template file is not a well-formed .docx package."""
