"""PDF text extraction via pypdf.

Each page's text is followed by a ``Page (N) Break`` marker line, so a PDF
whose pages yield no text (scanned images) extracts to markers only.
"""

from __future__ import annotations

import pypdf


def page_break(page_number: int) -> str:
    return f"----------------Page ({page_number}) Break----------------"


def extract_pdf_text(path: str) -> str:
    """Extract all page text from the PDF at *path*."""
    reader = pypdf.PdfReader(path)
    parts: list[str] = []
    for number, page in enumerate(reader.pages):
        page_text = (page.extract_text() or "").strip()
        if page_text:
            parts.append(page_text)
        parts.append(page_break(number))
    return "\n\n".join(parts)
