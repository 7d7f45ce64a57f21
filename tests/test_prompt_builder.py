"""Tests for report kinds and the extraction prompt."""
import json
import re

import pytest

from app.errors import UnknownReportKindError
from app.models.report_kinds import (
    ADHD_SCHEMA,
    AUTISM_SCHEMA,
    ReportCatalog,
    build_default_catalog,
)
from app.services.prompt_builder import build_extraction_prompt


@pytest.fixture
def catalog() -> ReportCatalog:
    return build_default_catalog()


# ---------------------------------------------------------------------------
# Report kinds
# ---------------------------------------------------------------------------

def test_schemas_differ_in_exactly_one_key():
    adhd, autism = set(ADHD_SCHEMA.keys), set(AUTISM_SCHEMA.keys)
    assert adhd - autism == {"AutismScreening"}
    assert autism - adhd == {"ADHDScreening"}
    assert len(ADHD_SCHEMA) == len(AUTISM_SCHEMA) == 69


def test_screening_field_has_the_same_position():
    index = ADHD_SCHEMA.keys.index("AutismScreening")
    assert AUTISM_SCHEMA.keys[index] == "ADHDScreening"


def test_defaults_are_fresh_empty_strings():
    first = ADHD_SCHEMA.defaults()
    first["ClientFirstName"] = "changed"
    assert ADHD_SCHEMA.defaults()["ClientFirstName"] == ""
    assert set(ADHD_SCHEMA.defaults().values()) == {""}


def test_resolve_known_kinds(catalog):
    assert catalog.resolve("cyp_adhd").template_filename == "CYP ADHD.docx"
    assert catalog.resolve("cyp_autism").output_filename == "CYP_Autism_Report.docx"


@pytest.mark.parametrize("selector", ["", None, "   "])
def test_blank_selector_uses_default(catalog, selector):
    assert catalog.resolve(selector).key == "cyp_adhd"


def test_unknown_selector_raises(catalog):
    with pytest.raises(UnknownReportKindError) as exc_info:
        catalog.resolve("adult_adhd")
    assert exc_info.value.status_code == 400
    assert "adult_adhd" in exc_info.value.details


def test_catalog_rejects_unknown_default():
    with pytest.raises(ValueError):
        build_default_catalog(default_key="nope")


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

def _embedded_schema(prompt: str) -> dict:
    match = re.search(r"^\{$.*?^\}$", prompt, flags=re.S | re.M)
    assert match, "schema JSON block not found"
    return json.loads(match.group(0))


def test_prompt_names_assessment_type(catalog):
    assert "an ADHD assessment questionnaire" in build_extraction_prompt(catalog.resolve("cyp_adhd"))
    assert "an autism assessment questionnaire" in build_extraction_prompt(catalog.resolve("cyp_autism"))


def test_prompt_embeds_full_schema_in_order(catalog):
    kind = catalog.resolve("cyp_autism")
    schema = _embedded_schema(build_extraction_prompt(kind))
    assert list(schema) == list(kind.schema.keys)
    assert set(schema.values()) == {""}


def test_prompt_asks_for_empty_strings(catalog):
    prompt = build_extraction_prompt(catalog.resolve("cyp_adhd"))
    assert "return an empty string for that key" in prompt
    assert "JSON only" in prompt


def test_notes_appended_only_when_present(catalog):
    kind = catalog.resolve("cyp_adhd")
    without = build_extraction_prompt(kind)
    blank = build_extraction_prompt(kind, "   ")
    with_notes = build_extraction_prompt(kind, "Use {British} spelling.")

    assert "Additional clinician notes" not in without
    assert blank == without
    assert with_notes.startswith(without)
    assert with_notes.endswith("Additional clinician notes/instructions: Use {British} spelling.")


def test_prompt_is_deterministic(catalog):
    kind = catalog.resolve("cyp_adhd")
    assert build_extraction_prompt(kind, "n") == build_extraction_prompt(kind, "n")
