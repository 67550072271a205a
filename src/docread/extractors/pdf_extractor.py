"""PDF extractor producing page-delimited text and a bookmark outline."""

from __future__ import annotations

import logging

import pymupdf

from docread.buffer import DocumentBuffer
from docread.document import Document
from docread.errors import FormatInvalid, OpenFailure, PasswordRequired
from docread.extractors.base import ensure_readable, require_content, title_from_path
from docread.models import MarkerType, ParserContext, ParserFlags, TocItem
from docread.normalization import normalize_whitespace
from docread.toc import nest_by_level

logger = logging.getLogger(__name__)


def _first_non_empty(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = normalize_whitespace(value)
    return cleaned or None


def outline_to_toc(outline: list[list], page_offsets: list[int]) -> list[TocItem]:
    """Nest ``[level, title, page]`` bookmark rows; pages are 1-based."""

    entries: list[tuple[int, TocItem]] = []
    for row in outline:
        level, title, page = row[0], row[1], row[2]
        offset = page_offsets[page - 1] if 1 <= page <= len(page_offsets) else None
        entries.append((level, TocItem(name=normalize_whitespace(title or ""), offset=offset)))
    return nest_by_level(entries)


class PdfExtractor:
    """Extract whitespace-normalized lines page by page."""

    def name(self) -> str:
        return "PDF Documents"

    def extensions(self) -> frozenset[str]:
        return frozenset({"pdf"})

    def supported_flags(self) -> ParserFlags:
        return ParserFlags.SUPPORTS_PAGES | ParserFlags.SUPPORTS_TOC

    def parse(self, context: ParserContext) -> Document:
        path = ensure_readable(context)
        try:
            doc = pymupdf.open(path)
        except pymupdf.FileDataError as exc:
            raise FormatInvalid(context.file_path, f"Invalid PDF: {exc}") from exc
        except OSError as exc:
            raise OpenFailure(context.file_path, f"Cannot open PDF: {exc}") from exc
        except RuntimeError as exc:
            raise FormatInvalid(context.file_path, f"Failed to open PDF document: {exc}") from exc

        with doc:
            self._unlock(doc, context)
            document = Document(buffer=DocumentBuffer(context.display_unit))
            page_offsets = self._extract_pages(doc, document)
            metadata = doc.metadata or {}
            document.title = _first_non_empty(metadata.get("title")) or title_from_path(context.file_path)
            document.author = _first_non_empty(metadata.get("author")) or ""
            document.toc_items = outline_to_toc(doc.get_toc(simple=True), page_offsets)

        if document.skipped_items:
            require_content(document.buffer, context.file_path, "PDF", document.skipped_items, item_kind="pages")
        return document

    def _unlock(self, doc: pymupdf.Document, context: ParserContext) -> None:
        if not doc.needs_pass:
            return
        if not context.password or not doc.authenticate(context.password):
            raise PasswordRequired(context.file_path, "Password required or incorrect")

    def _extract_pages(self, doc: pymupdf.Document, document: Document) -> list[int]:
        buffer = document.buffer
        page_offsets: list[int] = []

        for page_index, page in enumerate(doc, start=1):
            page_offsets.append(buffer.current_position())
            buffer.mark(MarkerType.PAGE_BREAK, text=f"Page {page_index}")
            try:
                raw_text = page.get_text("text")
            except RuntimeError as exc:
                logger.warning("Skipping unreadable page %d: %s", page_index, exc)
                document.skipped_items.append(f"page {page_index}")
                continue

            for line in raw_text.splitlines():
                cleaned = normalize_whitespace(line)
                if cleaned:
                    buffer.append(cleaned)
                    buffer.append("\n")

        return page_offsets
