"""
DOCX template filling.

Replaces ``{{TagName}}`` placeholders in a Word template with values from a
flat record and returns the new document bytes.  The stored template is only
ever read.

Word frequently splits a typed ``{{Tag}}`` over several ``w:r`` runs (spell
check, revision marks, formatting toggles), so tags are matched against the
concatenated text of each paragraph (runs wrapped in ``w:ins``, ``w:sdt``,
``w:hyperlink`` and similar included) and the replacement is written into the
run holding the opening braces.  That run's formatting is kept.

Public API
----------
TemplateFiller(template_dir)
TemplateFiller.fill(template_name, record)          -> bytes
TemplateFiller.afill(template_name, record)         -> bytes   (async)
TemplateFiller.render(blob, record)                 -> bytes
TemplateFiller.list_tags(template_name)             -> List[str]
TemplateFiller.template_exists(template_name)       -> bool
"""
from __future__ import annotations

import io
import json
import logging
import re
import zipfile
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Set, Tuple

import aiofiles
from docx import Document as DocxDocument
from docx.document import Document as DocxDocumentType
from docx.oxml.ns import qn
from docx.text.paragraph import Paragraph
from docx.text.run import Run
from fastapi.concurrency import run_in_threadpool

from app.errors import MalformedTemplateError, TemplateNotFoundError

logger = logging.getLogger(__name__)

# {{Name}}; whitespace just inside the braces is not part of the name
TAG_PATTERN = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")

# Fixed archive timestamp so identical fills give identical bytes
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)

# Stop tags when walking up from a run: its own paragraph, or removed text
_RUN_BOUNDARY_TAGS = {qn("w:p"), qn("w:del"), qn("w:moveFrom")}


def to_display_string(value: Any) -> str:
    """Text written into the document for *value* (``None`` → ``""``)."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


class TemplateFiller:
    """Fills named templates from a fixed, read-only directory."""

    def __init__(self, template_dir: str | Path) -> None:
        self.template_dir = Path(template_dir)

    # ------------------------------------------------------------------
    # Template lookup
    # ------------------------------------------------------------------

    def resolve(self, template_name: str) -> Path:
        """
        Return the path of *template_name* inside the template directory.

        Raises:
            TemplateNotFoundError: name escapes the directory or the file
                                   does not exist.
        """
        base = self.template_dir.resolve()
        path = (base / template_name).resolve()
        if base not in path.parents or not path.is_file():
            raise TemplateNotFoundError(
                "Template not found",
                details=f"{template_name!r} is not a file in {self.template_dir}",
            )
        return path

    def template_exists(self, template_name: str) -> bool:
        try:
            self.resolve(template_name)
        except TemplateNotFoundError:
            return False
        return True

    def read_template(self, template_name: str) -> bytes:
        path = self.resolve(template_name)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise TemplateNotFoundError(
                "Template not readable", details=f"{template_name!r}: {exc}"
            ) from exc

    async def aread_template(self, template_name: str) -> bytes:
        path = self.resolve(template_name)
        try:
            async with aiofiles.open(path, "rb") as fh:
                return await fh.read()
        except OSError as exc:
            raise TemplateNotFoundError(
                "Template not readable", details=f"{template_name!r}: {exc}"
            ) from exc

    # ------------------------------------------------------------------
    # Filling
    # ------------------------------------------------------------------

    def fill(self, template_name: str, record: Mapping[str, Any]) -> bytes:
        """Fill *template_name* with *record* and return the .docx bytes."""
        return self.render(self.read_template(template_name), record)

    async def afill(self, template_name: str, record: Mapping[str, Any]) -> bytes:
        """Async ``fill``: reads with aiofiles, renders in the thread pool."""
        blob = await self.aread_template(template_name)
        return await run_in_threadpool(self.render, blob, record)

    def render(self, blob: bytes, record: Mapping[str, Any]) -> bytes:
        """
        Substitute every tag in the template *blob*.

        ``None`` values and tags with no key in *record* become ``""``.
        Keys with no matching tag are ignored.
        """
        document = _open_docx(blob)
        values = {str(key): to_display_string(value) for key, value in (record or {}).items()}

        replaced = 0
        unfilled: Set[str] = set()
        for paragraph in _iter_paragraphs(document):
            count, missing = _fill_paragraph(paragraph, values)
            replaced += count
            unfilled.update(missing)

        if unfilled:
            logger.info(
                "render: %d tag(s) had no value and were cleared: %s",
                len(unfilled), sorted(unfilled)[:10],
            )
        logger.info("render: replaced %d tag occurrence(s)", replaced)

        buffer = io.BytesIO()
        document.save(buffer)
        return _pin_zip_timestamps(buffer.getvalue())

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def list_tags(self, template_name: str) -> List[str]:
        """Distinct tag names in *template_name*, in document order."""
        document = _open_docx(self.read_template(template_name))
        seen: Dict[str, None] = {}
        for paragraph in _iter_paragraphs(document):
            text = "".join(run.text for run in _paragraph_runs(paragraph))
            for match in TAG_PATTERN.finditer(text):
                seen.setdefault(match.group(1), None)
        return list(seen)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _open_docx(blob: bytes) -> DocxDocumentType:
    try:
        return DocxDocument(io.BytesIO(blob))
    except Exception as exc:
        raise MalformedTemplateError(
            "Template is not a valid .docx document", details=str(exc)
        ) from exc


def _iter_paragraphs(document: DocxDocumentType) -> Iterator[Paragraph]:
    """
    Every paragraph in the body (tables, nested tables and text boxes
    included) and in each header/footer the document defines.
    """
    for p in list(document.element.body.iter(qn("w:p"))):
        yield Paragraph(p, document)

    seen: Set[int] = set()
    for section in document.sections:
        for part in (
            section.header, section.first_page_header, section.even_page_header,
            section.footer, section.first_page_footer, section.even_page_footer,
        ):
            # Linked parts have no definition; touching them would add one
            if part.is_linked_to_previous:
                continue
            element = part._element
            if id(element) in seen:
                continue
            seen.add(id(element))
            for p in list(element.iter(qn("w:p"))):
                yield Paragraph(p, part)


def _fill_paragraph(
    paragraph: Paragraph, values: Mapping[str, str]
) -> Tuple[int, List[str]]:
    """Replace the tags of one paragraph in place; returns (count, unfilled names)."""
    runs = _paragraph_runs(paragraph)
    if not runs:
        return 0, []

    originals = [run.text for run in runs]
    texts = list(originals)
    joined = "".join(texts)
    if "{{" not in joined:
        return 0, []

    matches = list(TAG_PATTERN.finditer(joined))
    if not matches:
        return 0, []

    bounds: List[Tuple[int, int]] = []
    pos = 0
    for text in texts:
        bounds.append((pos, pos + len(text)))
        pos += len(text)

    changed: Set[int] = set()
    unfilled: List[str] = []

    # Right to left, so offsets of earlier matches stay valid
    for match in reversed(matches):
        name = match.group(1)
        if name not in values:
            unfilled.append(name)
        replacement = values.get(name, "")

        first, first_off = _locate(bounds, match.start())
        last, last_off = _locate(bounds, match.end() - 1)

        if first == last:
            text = texts[first]
            texts[first] = text[:first_off] + replacement + text[last_off + 1:]
        else:
            texts[first] = texts[first][:first_off] + replacement
            for i in range(first + 1, last):
                texts[i] = ""
            texts[last] = texts[last][last_off + 1:]
        changed.update(range(first, last + 1))

    for i in sorted(changed):
        if texts[i] != originals[i]:
            runs[i].text = texts[i]

    return len(matches), unfilled


def _paragraph_runs(paragraph: Paragraph) -> List[Run]:
    """
    Runs belonging to *paragraph*, including those wrapped in tracked
    insertions, content controls, hyperlinks, smart tags and simple fields.

    Runs inside a nested text-box paragraph belong to that paragraph, and
    deleted or moved-away runs are left alone.
    """
    p = paragraph._p
    runs: List[Run] = []
    for r in p.iter(qn("w:r")):
        parent = r.getparent()
        while parent is not p and parent.tag not in _RUN_BOUNDARY_TAGS:
            parent = parent.getparent()
        if parent is p:
            runs.append(Run(r, paragraph))
    return runs


def _locate(bounds: List[Tuple[int, int]], offset: int) -> Tuple[int, int]:
    """Map a paragraph-level character offset to (run index, offset in run)."""
    for index, (start, end) in enumerate(bounds):
        if start <= offset < end:
            return index, offset - start
    raise IndexError(f"offset {offset} outside paragraph text")


def _pin_zip_timestamps(data: bytes) -> bytes:
    """Rewrite the package with a fixed timestamp on every entry."""
    out = io.BytesIO()
    with zipfile.ZipFile(io.BytesIO(data)) as src, \
            zipfile.ZipFile(out, "w", zipfile.ZIP_DEFLATED) as dst:
        for info in src.infolist():
            pinned = zipfile.ZipInfo(info.filename, date_time=_ZIP_EPOCH)
            pinned.compress_type = zipfile.ZIP_DEFLATED
            pinned.external_attr = info.external_attr
            dst.writestr(pinned, src.read(info.filename))
    return out.getvalue()

