"""
Extraction prompt for the Gemini call.

The prompt text is a module-level constant so it can be tuned without
touching logic code.
"""
from __future__ import annotations

import json

from app.models.report_kinds import ReportKind

_EXTRACTION_PROMPT = """\
You are an assistant that converts an {assessment_type} assessment questionnaire into a JSON object.
Strictly output JSON only - no text outside JSON. The JSON keys MUST match exactly these placeholders:
{schema_json}

Populate each field with the appropriate narrative text based on the uploaded file. \
If a field is not found, return an empty string for that key. Do not omit any key.
{notes_section}"""

_NOTES_SECTION = "\nAdditional clinician notes/instructions: {notes}"


def build_extraction_prompt(kind: ReportKind, notes: str = "") -> str:
    """
    Instruction text asking the model to mirror *kind*'s schema as JSON.

    *notes* is appended verbatim under its own label, only when non-blank.
    """
    schema_json = json.dumps(kind.schema.defaults(), indent=2, ensure_ascii=False)
    notes_section = _NOTES_SECTION.format(notes=notes) if notes and notes.strip() else ""

    return _EXTRACTION_PROMPT.format(
        assessment_type=kind.assessment_type,
        schema_json=schema_json,
        notes_section=notes_section,
    )
