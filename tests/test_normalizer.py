"""Tests for model-output normalisation and schema merging."""
import pytest

from app.errors import ModelOutputParseError
from app.models.report_kinds import ADHD_SCHEMA, AUTISM_SCHEMA, Schema
from app.services.normalizer import (
    merge_with_schema,
    normalize_model_output,
    strip_code_fence,
)


def test_plain_object():
    assert normalize_model_output('{"A": "x"}') == {"A": "x"}


def test_fenced_output_matches_plain():
    fenced = '```json\n{"A":"x"}\n```'
    assert normalize_model_output(fenced) == normalize_model_output('{"A":"x"}')


def test_fence_without_newline():
    assert normalize_model_output('```json{"A": "x"}```') == {"A": "x"}


def test_array_is_unwrapped():
    assert normalize_model_output('[{"A":"x"}]') == {"A": "x"}


def test_fenced_array_is_unwrapped():
    assert normalize_model_output('```json\n[{"A":"x"}, {"A":"y"}]\n```') == {"A": "x"}


def test_empty_array_gives_empty_record():
    assert normalize_model_output("[]") == {}


@pytest.mark.parametrize("text", ["[null]", '[""]', "[0]", "[false]", "[[]]", "```json\n[null]\n```"])
def test_falsy_first_element_gives_empty_record(text):
    assert normalize_model_output(text) == {}


@pytest.mark.parametrize("text", ["", "   \n"])
def test_empty_output_gives_empty_record(text):
    assert normalize_model_output(text) == {}


def test_invalid_json_after_stripping_raises():
    with pytest.raises(ModelOutputParseError) as exc_info:
        normalize_model_output("```json\nnot json at all\n```")
    assert exc_info.value.status_code == 500
    assert "not json" in exc_info.value.details


@pytest.mark.parametrize("text", ['"just a string"', "42", "null", '["a", "b"]'])
def test_non_object_json_is_rejected(text):
    with pytest.raises(ModelOutputParseError):
        normalize_model_output(text)


def test_strip_code_fence_leaves_unfenced_text():
    assert strip_code_fence('{"A": 1}') == '{"A": 1}'


# ---------------------------------------------------------------------------
# merge_with_schema
# ---------------------------------------------------------------------------

def test_merge_fills_every_schema_key():
    merged = merge_with_schema(ADHD_SCHEMA, {"ClientFirstName": "Sam"})
    assert set(ADHD_SCHEMA.keys) <= set(merged)
    assert merged["ClientFirstName"] == "Sam"
    assert merged["ClinicianName"] == ""


def test_merge_of_empty_array_output_is_schema_defaults():
    merged = merge_with_schema(AUTISM_SCHEMA, normalize_model_output("[]"))
    assert merged == AUTISM_SCHEMA.defaults()


def test_merge_keeps_keys_outside_schema():
    schema = Schema(name="small", keys=("A", "B"))
    merged = merge_with_schema(schema, {"B": "b", "Extra": "e"})
    assert merged == {"A": "", "B": "b", "Extra": "e"}
    assert list(merged)[:2] == ["A", "B"]


def test_merge_does_not_mutate_defaults():
    schema = Schema(name="small", keys=("A",))
    merge_with_schema(schema, {"A": "changed"})
    assert schema.defaults() == {"A": ""}


def test_record_values_override_defaults_even_when_falsy():
    schema = Schema(name="small", keys=("A", "B"))
    assert merge_with_schema(schema, {"A": None, "B": 0}) == {"A": None, "B": 0}
