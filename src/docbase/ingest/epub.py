"""EPUB text extraction — chapter order from the OPF spine, zipfile + bs4 + html2text.

License note: html2text is GPL-3.0. ebooklib (AGPL-3.0) is NOT used.
"""

from __future__ import annotations

import warnings
import zipfile
from pathlib import Path

import html2text
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

# html.parser handles the simple OPF/container XML fine; lxml is not a dependency.
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

_h2t = html2text.HTML2Text()
_h2t.ignore_links = True
_h2t.ignore_images = True
_h2t.body_width = 0


def html_to_text(html: str) -> str:
    """Strip HTML markup and return plain text via html2text."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(["script", "style", "nav", "footer", "head"]):
        tag.decompose()
    return _h2t.handle(str(soup)).strip()


def extract_epub_text(path: str) -> str:
    """Return the chapters of the EPUB at *path* as one text, in spine order."""
    chapters: list[str] = []
    with zipfile.ZipFile(path, "r") as zf:
        names = set(zf.namelist())
        opf_path = _find_opf_path(zf, names)
        hrefs = _parse_opf_spine(zf, opf_path)

        opf_dir = str(Path(opf_path).parent)
        for href in hrefs:
            full_path = f"{opf_dir}/{href}".lstrip("/") if opf_dir != "." else href
            if full_path not in names:
                full_path = href
            if full_path not in names:
                continue
            html = zf.read(full_path).decode("utf-8", errors="replace")
            text = html_to_text(html)
            if text.strip():
                chapters.append(text)

    return "\n\n".join(chapters)


def _find_opf_path(zf: zipfile.ZipFile, names: set[str]) -> str:
    """Find the OPF package file path from META-INF/container.xml."""
    if "META-INF/container.xml" in names:
        xml = zf.read("META-INF/container.xml").decode("utf-8", errors="replace")
        soup = BeautifulSoup(xml, "html.parser")
        rootfile = soup.find("rootfile")
        if rootfile and rootfile.get("full-path") in names:
            return rootfile["full-path"]
    for name in sorted(names):
        if name.endswith(".opf"):
            return name
    raise ValueError("No OPF package file found in EPUB archive.")


def _parse_opf_spine(zf: zipfile.ZipFile, opf_path: str) -> list[str]:
    """Parse the OPF spine and return chapter hrefs in reading order."""
    opf_xml = zf.read(opf_path).decode("utf-8", errors="replace")
    soup = BeautifulSoup(opf_xml, "html.parser")

    manifest: dict[str, str] = {}
    for item in soup.find_all("item"):
        item_id = item.get("id", "")
        href = item.get("href", "")
        media_type = item.get("media-type", "")
        if "html" in media_type or href.endswith((".html", ".xhtml", ".htm")):
            manifest[item_id] = href

    hrefs = [
        manifest[itemref.get("idref", "")]
        for itemref in soup.find_all("itemref")
        if itemref.get("idref", "") in manifest
    ]
    # No spine: every HTML item in manifest order.
    return hrefs or list(manifest.values())
