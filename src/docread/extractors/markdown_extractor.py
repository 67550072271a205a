"""Markdown extractor rendering through the shared HTML converter."""

from __future__ import annotations

import markdown

from docread.buffer import DocumentBuffer
from docread.document import Document
from docread.encoding import decode_bytes
from docread.extractors.base import emit_converted, read_source_bytes, require_content, title_from_path
from docread.html_to_text import HtmlToText
from docread.models import ParserContext, ParserFlags, TocItem
from docread.toc import HeadingInfo, build_toc_from_buffer

# "toc" gives every heading a slug id; "extra" honors explicit {#id} attributes
_MARKDOWN_EXTENSIONS = ["extra", "toc"]


def _attach_anchor_references(toc_items: list[TocItem], headings: list[HeadingInfo]) -> None:
    anchors_by_offset = {heading.offset: heading.anchor for heading in headings if heading.anchor}
    for root in toc_items:
        for item in root.walk():
            anchor = anchors_by_offset.get(item.offset) if item.offset is not None else None
            if anchor:
                item.reference = f"#{anchor}"


class MarkdownExtractor:
    def name(self) -> str:
        return "Markdown Files"

    def extensions(self) -> frozenset[str]:
        return frozenset({"md", "markdown", "mdown", "mkdn", "mkd"})

    def supported_flags(self) -> ParserFlags:
        return ParserFlags.SUPPORTS_TOC

    def parse(self, context: ParserContext) -> Document:
        source = decode_bytes(read_source_bytes(context))
        html = markdown.markdown(source, extensions=_MARKDOWN_EXTENSIONS)
        converted = HtmlToText(context.display_unit).convert(html)

        buffer = DocumentBuffer(context.display_unit)
        emit_converted(buffer, converted)
        require_content(buffer, context.file_path, "Markdown", [])

        toc_items = build_toc_from_buffer(buffer)
        _attach_anchor_references(toc_items, converted.headings)

        return Document(
            title=title_from_path(context.file_path),
            buffer=buffer,
            toc_items=toc_items,
            id_positions=dict(converted.id_positions),
        )
