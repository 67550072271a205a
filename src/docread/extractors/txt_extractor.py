"""Plain-text extractor with encoding detection and header metadata."""

from __future__ import annotations

from docread.buffer import DocumentBuffer
from docread.document import Document
from docread.encoding import decode_bytes
from docread.extractors.base import read_source_bytes, require_content, title_from_path
from docread.models import ParserContext, ParserFlags
from docread.normalization import normalize_whitespace, remove_soft_hyphens

_HEADER_FIELDS = {
    "title": "title",
    "author": "author",
    "название": "title",
    "автор": "author",
}
_HEADER_SCAN_LINES = 20


class TextExtractor:
    """Expose a text file verbatim as a single flat document."""

    def name(self) -> str:
        return "Text Files"

    def extensions(self) -> frozenset[str]:
        return frozenset({"txt", "log"})

    def supported_flags(self) -> ParserFlags:
        return ParserFlags.NONE

    def parse(self, context: ParserContext) -> Document:
        raw = read_source_bytes(context)
        text = remove_soft_hyphens(decode_bytes(raw))
        text = text.replace("\r\n", "\n").replace("\r", "\n")

        title, author = self._extract_metadata(text)
        buffer = DocumentBuffer.with_content(text, context.display_unit)
        require_content(buffer, context.file_path, "Text file", [])
        return Document(
            title=title or title_from_path(context.file_path),
            author=author or "",
            buffer=buffer,
        )

    def _extract_metadata(self, text: str) -> tuple[str | None, str | None]:
        title: str | None = None
        author: str | None = None
        for line in text.splitlines()[:_HEADER_SCAN_LINES]:
            normalized = normalize_whitespace(line)
            if not normalized or ":" not in normalized:
                continue
            key, value = normalized.split(":", 1)
            field = _HEADER_FIELDS.get(key.strip().casefold())
            clean_value = normalize_whitespace(value)
            if not field or not clean_value:
                continue
            if field == "title" and not title:
                title = clean_value
            if field == "author" and not author:
                author = clean_value
        return title, author
