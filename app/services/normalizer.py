"""
Response normalisation for Gemini extraction output.

The model is asked for a single JSON object but is not trusted to deliver
one: output may be wrapped in a ```json fence, or returned as a one-element
array.  ``normalize_model_output`` turns raw text into a plain dict;
``merge_with_schema`` overlays that dict on the report kind's defaults.

Public API
----------
normalize_model_output(text)       -> Dict[str, Any]
merge_with_schema(schema, record)  -> Dict[str, Any]
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Tuple

from app.errors import ModelOutputParseError
from app.models.report_kinds import Schema

logger = logging.getLogger(__name__)

# Leading ```json (optionally followed by a newline) or a trailing ```
_FENCE_RE = re.compile(r"\A```json[ \t]*\n?|```\Z", re.IGNORECASE)

_PREVIEW_CHARS = 300


def normalize_model_output(text: str) -> Dict[str, Any]:
    """
    Parse raw model output into a single flat record.

    Strategy:
      1. direct ``json.loads``
      2. strip a ```json … ``` fence and parse again

    A JSON array is unwrapped to its first element; an empty array or a falsy
    first element gives ``{}``.

    Raises:
        ModelOutputParseError: the text is not JSON after fence stripping,
                               or the unwrapped value is not an object.
    """
    if not text or not text.strip():
        logger.warning("normalize_model_output: empty model output, using empty record")
        return {}

    ok, value = _try_json(text)
    if not ok:
        cleaned = strip_code_fence(text)
        ok, value = _try_json(cleaned) if cleaned else (True, {})
        if not ok:
            logger.error(
                "normalize_model_output: model output is not valid JSON. Preview: %s",
                text[:_PREVIEW_CHARS],
            )
            raise ModelOutputParseError(
                "Model output is not valid JSON",
                details=text[:_PREVIEW_CHARS],
            )
        logger.debug("normalize_model_output: parsed after stripping code fence")

    return _unwrap_record(value, text)


def strip_code_fence(text: str) -> str:
    """Remove a leading ```json marker and a trailing ``` marker."""
    return _FENCE_RE.sub("", text.strip())


def merge_with_schema(schema: Schema, record: Dict[str, Any]) -> Dict[str, Any]:
    """
    Overlay *record* on the schema defaults.

    Every schema key is present in the result; keys the model added that are
    not in the schema are kept (the filler ignores what it cannot place).
    """
    merged = schema.defaults()
    merged.update(record)

    extra = [key for key in record if key not in schema]
    if extra:
        logger.info(
            "merge_with_schema: %d key(s) outside schema %r kept: %s",
            len(extra), schema.name, extra[:10],
        )
    return merged


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _try_json(text: str) -> Tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return False, None


def _unwrap_record(value: Any, raw: str) -> Dict[str, Any]:
    if isinstance(value, list):
        # A falsy first element (null, "", 0, false, []) means no record
        value = value[0] if value and value[0] else {}

    if not isinstance(value, dict):
        raise ModelOutputParseError(
            "Model output is not a JSON object",
            details=f"Got {type(value).__name__}: {raw[:_PREVIEW_CHARS]}",
        )
    return value
