"""
Report generation pipeline.

One parameterised flow for every report kind:

    resolve kind → build prompt → Gemini upload + generate
                 → normalise output → merge with schema → fill template

Each call to ``run`` owns its record and output bytes; nothing is kept
between requests.
"""
from __future__ import annotations

import dataclasses
import logging
import time
from typing import Any, Dict

from app.models.report_kinds import ReportCatalog, ReportKind
from app.services.gemini_client import GeminiClient
from app.services.normalizer import merge_with_schema, normalize_model_output
from app.services.prompt_builder import build_extraction_prompt
from app.services.template_filler import TemplateFiller

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class SourceDocument:
    """The uploaded questionnaire."""

    content: bytes
    filename: str = "input"
    mime_type: str = "application/octet-stream"


@dataclasses.dataclass
class GeneratedReport:
    content: bytes
    filename: str
    record: Dict[str, Any]
    kind: ReportKind


class ReportPipeline:
    def __init__(
        self,
        catalog: ReportCatalog,
        gemini: GeminiClient,
        filler: TemplateFiller,
    ) -> None:
        self.catalog = catalog
        self.gemini = gemini
        self.filler = filler

    async def run(
        self,
        source: SourceDocument,
        notes: str = "",
        selector: str = "",
    ) -> GeneratedReport:
        """
        Produce a filled report for *source*.

        Raises:
            UnknownReportKindError: before any outbound call.
            ConfigurationError:     Gemini key missing, before any outbound call.
            UpstreamError, ModelOutputParseError,
            TemplateNotFoundError, MalformedTemplateError.
        """
        t0 = time.monotonic()
        kind = self.catalog.resolve(selector)
        prompt = build_extraction_prompt(kind, notes)

        raw = await self.gemini.extract(
            source.content, source.mime_type, source.filename, prompt
        )
        record = normalize_model_output(raw)
        merged = merge_with_schema(kind.schema, record)
        filled = sum(1 for key in kind.schema.keys if merged.get(key))
        logger.info(
            "Report %r: %d/%d schema fields populated, %d keys total",
            kind.key, filled, len(kind.schema), len(merged),
        )

        content = await self.filler.afill(kind.template_filename, merged)

        logger.info(
            "Report %r generated for %r (%d bytes) in %.2fs",
            kind.key, source.filename, len(content), time.monotonic() - t0,
        )
        return GeneratedReport(
            content=content,
            filename=kind.output_filename,
            record=merged,
            kind=kind,
        )
