"""
Heading extraction for grouping changes by contract section.

Best-effort: it only labels groups in the review UI and never feeds
the mutation engine. Uses python-docx to resolve style names and runs.
"""

import re
from io import BytesIO
from typing import List, Optional

import structlog
from docx import Document
from docx.oxml.ns import qn
from docx.text.paragraph import Paragraph

from redreview.errors import InvalidPackage
from redreview.models import Heading

logger = structlog.get_logger(__name__)

TITLE_PATTERN = re.compile(r"\b(AGREEMENT|CONTRACT)\b", re.IGNORECASE)
HEADING_STYLE_PATTERN = re.compile(r"^heading\s*(\d+)$", re.IGNORECASE)
NUMBERED_PARAGRAPH_PATTERN = re.compile(r"^(\d+\.\d+\.\d+)\s+(.{10,100})")

MIN_TITLE_LENGTH = 3
MAX_TITLE_LENGTH = 100


def parse_sections(file_bytes: bytes) -> List[Heading]:
    """
    Returns headings in document order:
    - level 0: the document title (Title style, or a bold line naming an agreement/contract)
    - level N: paragraphs in a "Heading N" style
    - level 1/2: numbered list items that open with a bold caption
    - level 3: manually numbered clauses like "2.1.1 Customer represents..."
    """
    try:
        doc = Document(BytesIO(file_bytes))
    except Exception as e:
        raise InvalidPackage(f"Could not open document for section parsing: {e}", cause=e) from e

    headings: List[Heading] = []
    seen_ids = set()
    section_counter = 1
    title_found = False

    def add(level: int, number: str, title: str, heading_id: str):
        # Duplicate titles get a positional suffix so ids stay usable as keys
        if heading_id in seen_ids:
            heading_id = f"{heading_id}-{len(headings)}"
        seen_ids.add(heading_id)
        headings.append(Heading(level=level, number=number, title=title, id=heading_id))

    for paragraph in doc.paragraphs:
        text = paragraph.text.strip()
        if not text:
            continue

        style_name = _style_name(paragraph)

        if not title_found and _is_document_title(paragraph, style_name, text):
            title_found = True
            add(0, "", text, "document-title")
            continue

        m = HEADING_STYLE_PATTERN.match(style_name)
        if m:
            add(int(m.group(1)), "", text, f"section-{_slug(text)}")
            continue

        list_level = _list_level(paragraph)
        if list_level is not None:
            caption = _leading_bold_text(paragraph)
            if caption and MIN_TITLE_LENGTH <= len(caption) <= MAX_TITLE_LENGTH:
                if list_level == 0:
                    add(1, str(section_counter), caption, f"section-{_slug(caption)}")
                    section_counter += 1
                else:
                    add(2, "", caption, f"section-{_slug(caption)}")
                continue

        m = NUMBERED_PARAGRAPH_PATTERN.match(text)
        if m:
            number = m.group(1)
            add(3, number, m.group(2).strip(), f"section-{number.replace('.', '-')}")

    logger.info("Sections parsed", count=len(headings))
    return headings


def _style_name(paragraph: Paragraph) -> str:
    style = paragraph.style
    return (style.name or "") if style is not None else ""


def _is_document_title(paragraph: Paragraph, style_name: str, text: str) -> bool:
    if style_name.lower() == "title":
        return True
    runs = [r for r in paragraph.runs if r.text.strip()]
    return bool(runs) and all(r.bold for r in runs) and bool(TITLE_PATTERN.search(text))


def _list_level(paragraph: Paragraph) -> Optional[int]:
    """ilvl of a directly numbered paragraph, or None if it is not in a list."""
    pPr = paragraph._p.pPr
    if pPr is None:
        return None
    numPr = pPr.find(qn("w:numPr"))
    if numPr is None:
        return None
    ilvl = numPr.find(qn("w:ilvl"))
    try:
        return int(ilvl.get(qn("w:val"))) if ilvl is not None else 0
    except (TypeError, ValueError):
        return 0


def _leading_bold_text(paragraph: Paragraph) -> str:
    parts = []
    for run in paragraph.runs:
        if not run.text:
            continue
        if not run.bold:
            break
        parts.append(run.text)
    return "".join(parts).strip()


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]", "-", text.lower())
