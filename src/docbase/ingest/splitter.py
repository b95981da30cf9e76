"""Text splitter — heading-aware sections with fixed-window fallback."""

from __future__ import annotations

import re

from docbase.interfaces import Splitter

# Matches H1, H2, H3 headings at the start of a line.
_HEADING_RE = re.compile(r"^#{1,3} .+", re.MULTILINE)


class TextSplitter(Splitter):
    """Split text into chunks of at most ``chunk_size`` tokens.

    Strategy:
    - If the text has Markdown H1/H2/H3 headings, each heading + its body is
      a section; content before the first heading is its own section.
    - Sections over ``chunk_size`` tokens, and heading-less text, are split
      into fixed windows of ``chunk_size * 4`` characters with ``overlap``.

    Token counting uses a 4-chars-per-token approximation.
    """

    def __init__(self, chunk_size: int = 512, overlap: float = 0.10) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if not 0.0 <= overlap < 1.0:
            raise ValueError("overlap must be in [0.0, 1.0)")
        self.chunk_size = chunk_size
        self.overlap = overlap

    @staticmethod
    def count_tokens(text: str) -> int:
        """Approximate token count: 4 characters ≈ 1 token."""
        return max(1, len(text) // 4)

    def split(self, text: str) -> list[str]:
        if not text.strip():
            return []

        sections = self._split_on_headings(text)
        if not sections:
            return self._split_fixed_window(text)

        chunks: list[str] = []
        for section in sections:
            if self.count_tokens(section) <= self.chunk_size:
                chunks.append(section)
            else:
                chunks.extend(self._split_fixed_window(section))
        return [c for c in chunks if c.strip()]

    def _split_on_headings(self, text: str) -> list[str]:
        """Split *text* on H1/H2/H3 boundaries; [] if there are none."""
        matches = list(_HEADING_RE.finditer(text))
        if not matches:
            return []

        sections: list[str] = []
        preamble = text[: matches[0].start()].strip()
        if preamble:
            sections.append(preamble)

        for i, match in enumerate(matches):
            end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
            section = text[match.start():end].strip()
            if section:
                sections.append(section)
        return sections

    def _split_fixed_window(self, text: str) -> list[str]:
        """Split *text* into stripped, non-empty windows with overlap."""
        if not text.strip():
            return []

        char_size = self.chunk_size * 4
        overlap_chars = int(char_size * self.overlap)
        step = max(1, char_size - overlap_chars)

        segments: list[str] = []
        pos = 0
        length = len(text)

        while pos < length:
            end = min(pos + char_size, length)
            segment = text[pos:end].strip()
            if segment:
                segments.append(segment)
            if end >= length:
                break
            pos += step

        return segments
