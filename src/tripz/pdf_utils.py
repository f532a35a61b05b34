from __future__ import annotations

import io

from pypdf import PdfReader


def get_total_pages(pdf_bytes: bytes) -> int:
    """Return total page count from PDF bytes."""
    reader = PdfReader(io.BytesIO(pdf_bytes))
    return len(reader.pages)


def extract_page_text(pdf_bytes: bytes, page_num: int) -> str:
    """Extract the text layer of one page (1-indexed)."""
    reader = PdfReader(io.BytesIO(pdf_bytes))
    return reader.pages[page_num - 1].extract_text() or ""


def get_link_uris(pdf_bytes: bytes) -> list[tuple[int, str]]:
    """List ``(page_num, uri)`` for every URI link annotation, 1-indexed."""
    reader = PdfReader(io.BytesIO(pdf_bytes))
    links: list[tuple[int, str]] = []
    for page_num, page in enumerate(reader.pages, start=1):
        for annot_ref in page.get("/Annots") or []:
            annot = annot_ref.get_object()
            if annot.get("/Subtype") != "/Link":
                continue
            action = annot.get("/A")
            if action is None:
                continue
            action = action.get_object()
            if action.get("/S") == "/URI":
                links.append((page_num, str(action["/URI"])))
    return links
