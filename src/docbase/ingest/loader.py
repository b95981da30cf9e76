"""Document loader — dispatch by source type and file extension.

  url                            → web page fetch (SSRF-guarded)
  .pdf                           → pypdf, with page-break markers
  .epub                          → OPF spine chapters
  .html .htm                     → bs4 + html2text
  .txt .md .markdown .rst .text
  .csv .log .json .yaml .yml     → read verbatim (utf-8, errors replaced)
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path

from pypdf.errors import PyPdfError

from docbase.errors import LoadFailure
from docbase.ingest.epub import extract_epub_text, html_to_text
from docbase.ingest.pdf import extract_pdf_text
from docbase.ingest.web import fetch_page_text, is_web_url
from docbase.interfaces import Loader

logger = logging.getLogger(__name__)

_PDF_EXTS = {".pdf"}
_EPUB_EXTS = {".epub"}
_HTML_EXTS = {".html", ".htm"}
_TEXT_EXTS = {
    ".txt", ".md", ".markdown", ".rst", ".text", ".csv", ".log", ".json", ".yaml", ".yml",
}
SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(_PDF_EXTS | _EPUB_EXTS | _HTML_EXTS | _TEXT_EXTS)


class DocumentLoader(Loader):
    """Load text from local files and web pages."""

    def is_parseable(self, source_type: str, origin: str) -> bool:
        if source_type == "url":
            return is_web_url(origin)
        if source_type == "file":
            return Path(origin).suffix.lower() in SUPPORTED_EXTENSIONS
        return False

    def load(self, source_type: str, origin: str) -> str:
        try:
            if source_type == "url":
                return fetch_page_text(origin)
            return self._load_file(origin)
        except LoadFailure:
            raise
        except (OSError, ValueError, RuntimeError, PyPdfError, zipfile.BadZipFile) as exc:
            logger.debug("Load failed for %s", origin, exc_info=True)
            raise LoadFailure(origin, str(exc)) from exc

    @staticmethod
    def _load_file(path: str) -> str:
        p = Path(path)
        if not p.is_file():
            raise LoadFailure(path, "File not found")
        ext = p.suffix.lower()
        if ext in _PDF_EXTS:
            return extract_pdf_text(path)
        if ext in _EPUB_EXTS:
            return extract_epub_text(path)
        if ext in _HTML_EXTS:
            return html_to_text(p.read_text(encoding="utf-8", errors="replace"))
        return p.read_text(encoding="utf-8", errors="replace")
