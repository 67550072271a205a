"""Standalone HTML/XHTML document extractor."""

from __future__ import annotations

from docread.buffer import DocumentBuffer
from docread.document import Document
from docread.encoding import decode_bytes
from docread.extractors.base import emit_converted, read_source_bytes, require_content, title_from_path
from docread.html_to_text import HtmlToText
from docread.models import ParserContext, ParserFlags
from docread.toc import build_toc_from_buffer


class HtmlExtractor:
    """Flatten a single HTML page; anchors are keyed by bare fragment."""

    def name(self) -> str:
        return "HTML Documents"

    def extensions(self) -> frozenset[str]:
        return frozenset({"htm", "html", "xhtml"})

    def supported_flags(self) -> ParserFlags:
        return ParserFlags.SUPPORTS_TOC | ParserFlags.SUPPORTS_LISTS

    def parse(self, context: ParserContext) -> Document:
        markup = decode_bytes(read_source_bytes(context))
        converted = HtmlToText(context.display_unit).convert(markup)

        buffer = DocumentBuffer(context.display_unit)
        emit_converted(buffer, converted)
        require_content(buffer, context.file_path, "HTML", [])

        return Document(
            title=converted.title or title_from_path(context.file_path),
            author=converted.author or "",
            buffer=buffer,
            toc_items=build_toc_from_buffer(buffer),
            id_positions=dict(converted.id_positions),
        )
