"""Tests for the template inspection endpoints."""
import pytest
from httpx import AsyncClient

from tests.conftest import build_docx


@pytest.mark.asyncio
async def test_list_report_kinds(client: AsyncClient):
    resp = await client.get("/api/templates/")
    assert resp.status_code == 200
    kinds = {item["key"]: item for item in resp.json()}
    assert set(kinds) == {"cyp_adhd", "cyp_autism"}
    assert kinds["cyp_adhd"]["is_default"] is True
    assert kinds["cyp_adhd"]["template_available"] is True
    assert "AutismScreening" in kinds["cyp_adhd"]["schema_keys"]
    assert kinds["cyp_autism"]["output_filename"] == "CYP_Autism_Report.docx"


@pytest.mark.asyncio
async def test_list_reports_missing_template(client: AsyncClient, template_dir):
    (template_dir / "CYP Autism.docx").unlink()
    resp = await client.get("/api/templates/")
    kinds = {item["key"]: item for item in resp.json()}
    assert kinds["cyp_autism"]["template_available"] is False


@pytest.mark.asyncio
async def test_template_tags_coverage(client: AsyncClient):
    resp = await client.get("/api/templates/cyp_adhd/tags")
    assert resp.status_code == 200
    data = resp.json()
    assert data["tags"] == [
        "ClientFirstName", "ClientSurname", "DOB", "AssessmentOutcome",
        "AutismScreening", "ADHDScreening", "ClinicianName",
    ]
    assert data["unknown_tags"] == ["ADHDScreening"]
    assert "ClinicianTitle" in data["missing_in_template"]
    assert "DOB" not in data["missing_in_template"]


@pytest.mark.asyncio
async def test_template_tags_unknown_kind(client: AsyncClient):
    resp = await client.get("/api/templates/adult_adhd/tags")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_template_tags_missing_file(client: AsyncClient, template_dir):
    (template_dir / "CYP ADHD.docx").unlink()
    resp = await client.get("/api/templates/cyp_adhd/tags")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_template_tags_malformed_file(client: AsyncClient, template_dir):
    (template_dir / "CYP ADHD.docx").write_bytes(b"not a docx")
    resp = await client.get("/api/templates/cyp_adhd/tags")
    assert resp.status_code == 500


@pytest.mark.asyncio
async def test_template_with_every_tag_has_full_coverage(client: AsyncClient, template_dir):
    from app.models.report_kinds import AUTISM_SCHEMA

    blob = build_docx(["{{%s}}" % key for key in AUTISM_SCHEMA.keys])
    (template_dir / "CYP Autism.docx").write_bytes(blob)

    data = (await client.get("/api/templates/cyp_autism/tags")).json()
    assert data["missing_in_template"] == []
    assert data["unknown_tags"] == []
