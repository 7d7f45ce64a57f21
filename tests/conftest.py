"""
Shared fixtures for report builder tests.

Templates are generated per test in a temporary directory with python-docx.
Gemini is replaced by an ``httpx.MockTransport`` stub that records every
outbound request, so tests can assert that nothing was sent.
"""
from __future__ import annotations

import io
import json
from pathlib import Path
from typing import AsyncGenerator, List, Optional, Sequence, Union

import httpx
import pytest
import pytest_asyncio
from docx import Document
from fastapi import Depends
from httpx import ASGITransport, AsyncClient

from app.config import Settings
from app.dependencies.services import get_gemini_client, get_settings
from app.main import app
from app.services.gemini_client import GeminiClient

GEMINI_TEST_URL = "https://gemini.test"

# A paragraph is either plain text or a list of run texts (to split tags)
ParagraphItem = Union[str, Sequence[str]]


# ---------------------------------------------------------------------------
# DOCX helpers
# ---------------------------------------------------------------------------

def build_docx(
    paragraphs: Sequence[ParagraphItem],
    header: Optional[str] = None,
    table: Optional[Sequence[Sequence[str]]] = None,
) -> bytes:
    """Return .docx bytes with the given body paragraphs, header and table."""
    doc = Document()
    for item in paragraphs:
        if isinstance(item, str):
            doc.add_paragraph(item)
        else:
            p = doc.add_paragraph()
            for text in item:
                p.add_run(text)
    if table:
        t = doc.add_table(rows=len(table), cols=len(table[0]))
        for r, row in enumerate(table):
            for c, text in enumerate(row):
                t.cell(r, c).text = text
    if header is not None:
        doc.sections[0].header.paragraphs[0].text = header

    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def docx_text(data: bytes) -> List[str]:
    """Body paragraph texts of a .docx blob (table cells excluded)."""
    return [p.text for p in Document(io.BytesIO(data)).paragraphs]


def docx_table_text(data: bytes) -> List[List[str]]:
    doc = Document(io.BytesIO(data))
    return [[cell.text for cell in row.cells] for row in doc.tables[0].rows]


def docx_header_text(data: bytes) -> str:
    return Document(io.BytesIO(data)).sections[0].header.paragraphs[0].text


REPORT_TEMPLATE_PARAGRAPHS: List[ParagraphItem] = [
    "Name: {{ClientFirstName}} {{ClientSurname}}",
    ["DOB: {{", "DOB", "}}"],
    "Outcome: {{AssessmentOutcome}}",
    "Screening: {{AutismScreening}}{{ADHDScreening}}",
    "Clinician: {{ClinicianName}}",
]


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """Directory holding both CYP templates."""
    directory = tmp_path / "templates"
    directory.mkdir()
    blob = build_docx(REPORT_TEMPLATE_PARAGRAPHS, header="Report for {{ClientFirstName}}")
    (directory / "CYP ADHD.docx").write_bytes(blob)
    (directory / "CYP Autism.docx").write_bytes(blob)
    return directory


# ---------------------------------------------------------------------------
# Gemini stub
# ---------------------------------------------------------------------------

class GeminiStub:
    """Fake Gemini upload + generateContent endpoints."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.generated_text = "{}"
        self.upload_status = 200
        self.generate_status = 200
        self.upload_payload: dict = {
            "file": {"uri": "https://gemini.test/files/abc123", "mimeType": "application/pdf"}
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/upload/v1beta/files":
            if self.upload_status != 200:
                return httpx.Response(self.upload_status, text="upload rejected")
            return httpx.Response(200, json=self.upload_payload)
        if request.url.path.endswith(":generateContent"):
            if self.generate_status != 200:
                return httpx.Response(self.generate_status, text="generate rejected")
            return httpx.Response(
                200,
                json={"candidates": [{"content": {"parts": [{"text": self.generated_text}]}}]},
            )
        return httpx.Response(404, text="unknown endpoint")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def generate_body(self) -> dict:
        """JSON body of the last generateContent request."""
        request = next(r for r in reversed(self.requests) if r.url.path.endswith(":generateContent"))
        return json.loads(request.content)


@pytest.fixture
def gemini_stub() -> GeminiStub:
    return GeminiStub()


@pytest.fixture
def app_settings(template_dir: Path) -> Settings:
    return Settings(
        GEMINI_API_KEY="test-key",
        GEMINI_BASE_URL=GEMINI_TEST_URL,
        TEMPLATE_DIR=str(template_dir),
    )


# ---------------------------------------------------------------------------
# App client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def client(
    app_settings: Settings, gemini_stub: GeminiStub
) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app, with settings and the
    Gemini client overridden.  Tests may replace the settings override.
    """

    def _override_gemini(s: Settings = Depends(get_settings)) -> GeminiClient:
        return GeminiClient(
            api_key=s.GEMINI_API_KEY,
            base_url=s.GEMINI_BASE_URL,
            transport=gemini_stub.transport,
        )

    app.dependency_overrides[get_settings] = lambda: app_settings
    app.dependency_overrides[get_gemini_client] = _override_gemini

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def upload_files(content: bytes = b"%PDF-1.4 questionnaire", name: str = "questionnaire.pdf"):
    return {"file": (name, content, "application/pdf")}
