"""EPUB extractor preserving spine order, section boundaries and navigation."""

from __future__ import annotations

import logging
import zipfile

import ebooklib
from ebooklib import epub
from lxml import etree

from docread.buffer import DocumentBuffer
from docread.document import Document
from docread.errors import FormatInvalid, OpenFailure
from docread.extractors.base import emit_converted, ensure_readable, require_content, title_from_path
from docread.html_to_text import ConvertedText, HtmlToText
from docread.models import DisplayUnit, MarkerType, ParserContext, ParserFlags, TocItem
from docread.normalization import normalize_whitespace
from docread.references import ReferenceResolver, anchor_key, is_external, normalize_path, resolve_relative
from docread.toc import build_toc_from_buffer

logger = logging.getLogger(__name__)


def _first_non_empty(values: list[tuple[str, dict[str, str]]] | None) -> str | None:
    if not values:
        return None
    for value, _attrs in values:
        cleaned = normalize_whitespace(value or "")
        if cleaned:
            return cleaned
    return None


def _convert_section(converter: HtmlToText, content: bytes) -> ConvertedText:
    """Parse a spine document as XHTML, falling back to lenient HTML."""

    converted = converter.convert(content, features="xml")
    if converted.text.strip():
        return converted
    return converter.convert(content, features="lxml")


class EpubExtractor:
    """Extract EPUB spine documents in reading order."""

    def name(self) -> str:
        return "EPUB Books"

    def extensions(self) -> frozenset[str]:
        return frozenset({"epub"})

    def supported_flags(self) -> ParserFlags:
        return ParserFlags.SUPPORTS_SECTIONS | ParserFlags.SUPPORTS_TOC | ParserFlags.SUPPORTS_LISTS

    def parse(self, context: ParserContext) -> Document:
        path = str(ensure_readable(context))
        book = self._open(context.file_path, path)

        document = Document(
            buffer=DocumentBuffer(context.display_unit),
            spine_items=[self._spine_idref(entry) for entry in book.spine],
            manifest_items={item.get_id(): normalize_path(item.get_name()) for item in book.get_items()},
        )
        self._extract_sections(book, document, context.display_unit)
        require_content(
            document.buffer,
            context.file_path,
            "EPUB",
            document.skipped_items,
            item_kind="spine items",
        )

        document.title = _first_non_empty(book.get_metadata("DC", "title")) or title_from_path(context.file_path)
        document.author = _first_non_empty(book.get_metadata("DC", "creator")) or ""

        resolver = ReferenceResolver(document.id_positions, document.section_positions)
        document.toc_items = self._toc_from_navigation(book.toc, resolver)
        if not document.toc_items:
            document.toc_items = build_toc_from_buffer(document.buffer)
        return document

    def _open(self, display_path: str, path: str) -> epub.EpubBook:
        try:
            return epub.read_epub(path)
        except OSError as exc:
            raise OpenFailure(display_path, f"Cannot open EPUB: {exc}") from exc
        except (epub.EpubException, zipfile.BadZipFile, KeyError, etree.LxmlError) as exc:
            raise FormatInvalid(display_path, f"Invalid EPUB container: {exc}") from exc

    @staticmethod
    def _spine_idref(entry: object) -> str:
        return entry[0] if isinstance(entry, tuple) else str(entry)

    def _extract_sections(self, book: epub.EpubBook, document: Document, unit: DisplayUnit) -> None:
        buffer = document.buffer
        converter = HtmlToText(unit)

        for index, idref in enumerate(document.spine_items, start=1):
            item = book.get_item_with_id(idref)
            if item is None:
                logger.warning("Spine item %s has no manifest entry", idref)
                document.skipped_items.append(idref)
                continue
            if item.get_type() != ebooklib.ITEM_DOCUMENT:
                continue

            try:
                converted = _convert_section(converter, item.get_content())
            except Exception as exc:
                logger.warning("Skipping spine item %s: %s", idref, exc)
                document.skipped_items.append(f"{idref} ({exc})")
                continue

            section_path = item.get_name()
            buffer.ensure_newline()
            section_start = buffer.current_position()
            document.section_positions[normalize_path(section_path)] = section_start
            buffer.mark(MarkerType.SECTION_BREAK, text=f"Section {index}")

            emit_converted(
                buffer,
                converted,
                link_reference=lambda href, base=section_path: resolve_relative(base, href),
            )
            for anchor, offset in converted.id_positions.items():
                document.id_positions[anchor_key(section_path, anchor)] = section_start + offset
            buffer.ensure_newline()

    def _toc_from_navigation(self, entries, resolver: ReferenceResolver) -> list[TocItem]:
        items: list[TocItem] = []
        for entry in entries or ():
            children = ()
            if isinstance(entry, tuple) and len(entry) == 2:
                node, children = entry
            elif isinstance(entry, (list, tuple)):
                items.extend(self._toc_from_navigation(entry, resolver))
                continue
            else:
                node = entry

            href = getattr(node, "href", None) or ""
            reference = href if not href or is_external(href) else resolve_relative("", href)
            item = TocItem(
                name=normalize_whitespace(getattr(node, "title", None) or ""),
                reference=reference,
                offset=resolver.resolve(reference) if reference else None,
            )
            item.children = self._toc_from_navigation(children, resolver)
            if item.offset is None and item.children:
                item.offset = item.children[0].offset
            items.append(item)
        return items
