"""OpenDocument Text extractor reading ``content.xml`` and ``meta.xml``."""

from __future__ import annotations

from zipfile import BadZipFile, ZipFile

from lxml import etree

from docread.buffer import DocumentBuffer
from docread.document import Document
from docread.errors import FormatInvalid, OpenFailure
from docread.extractors.base import ensure_readable, require_content, title_from_path
from docread.models import MarkerType, ParserContext, ParserFlags
from docread.normalization import normalize_whitespace
from docread.text_flow import TextFlow
from docread.toc import build_toc_from_buffer

_TEXT_NS = "urn:oasis:names:tc:opendocument:xmlns:text:1.0"
_XLINK_HREF = "{http://www.w3.org/1999/xlink}href"
_XML_ID = "{http://www.w3.org/XML/1998/namespace}id"

_CONTENT_PART = "content.xml"
_META_PART = "meta.xml"

_BLOCK_TAGS = frozenset({"p", "list-item", "table-row", "section"})
_SKIP_TAGS = frozenset({"tracked-changes", "note-citation", "sequence-decls", "table-of-content-source"})


def _text(name: str) -> str:
    return f"{{{_TEXT_NS}}}{name}"


def _local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


class _OdtWalker:
    def __init__(self, buffer: DocumentBuffer) -> None:
        self.buffer = buffer
        self.flow = TextFlow(buffer)
        self.id_positions: dict[str, int] = {}

    def walk_children(self, element: etree._Element) -> None:
        if element.text:
            self.flow.text(element.text)
        for child in element:
            if isinstance(child.tag, str):
                self.element(child)
            if child.tail:
                self.flow.text(child.tail)

    def element(self, element: etree._Element) -> None:
        name = _local_name(element)
        if name in _SKIP_TAGS:
            return
        if name in _BLOCK_TAGS or name == "h":
            self.flow.block_break()
        self._record_anchor(element, name)

        if name == "h":
            self._heading(element)
        elif name == "a":
            self._link(element)
        elif name == "s":
            count = element.get(_text("c"), "1")
            self.flow.flush_space()
            self.buffer.append(" " * (int(count) if count.isdigit() else 1))
        elif name == "tab":
            self.flow.flush_space()
            self.buffer.append("\t")
        elif name == "line-break":
            self.flow.line_break()
        elif name == "table-cell":
            self.flow.space()
            self.walk_children(element)
            self.flow.space()
        elif name in _BLOCK_TAGS:
            self.flow.block_break()
            self.walk_children(element)
            self.flow.block_break()
        else:
            self.walk_children(element)

    def _record_anchor(self, element: etree._Element, name: str) -> None:
        if name in {"bookmark", "bookmark-start"}:
            anchor = element.get(_text("name"))
        else:
            anchor = element.get(_XML_ID) or element.get(_text("id"))
        if anchor:
            self.id_positions[anchor] = self.buffer.current_position()

    def _heading(self, element: etree._Element) -> None:
        raw_level = element.get(_text("outline-level"), "1")
        level = int(raw_level) if raw_level.isdigit() and int(raw_level) > 0 else 1
        text = normalize_whitespace("".join(element.itertext()))

        self.flow.block_break()
        if text:
            self.buffer.mark(MarkerType.heading(level), text=text, level=min(level, 6))
        self.walk_children(element)
        self.flow.block_break()

    def _link(self, element: etree._Element) -> None:
        href = element.get(_XLINK_HREF) or ""
        text = normalize_whitespace("".join(element.itertext()))
        if not href or not text:
            self.walk_children(element)
            return
        self.flow.flush_space()
        self.buffer.mark(MarkerType.LINK, text=text, reference=href)
        self.walk_children(element)


class OdtExtractor:
    def name(self) -> str:
        return "OpenDocument Text Files"

    def extensions(self) -> frozenset[str]:
        return frozenset({"odt"})

    def supported_flags(self) -> ParserFlags:
        return ParserFlags.SUPPORTS_TOC

    def parse(self, context: ParserContext) -> Document:
        path = ensure_readable(context)
        try:
            with ZipFile(path, "r") as archive:
                names = set(archive.namelist())
                if _CONTENT_PART not in names:
                    raise FormatInvalid(context.file_path, f"ODT archive has no {_CONTENT_PART}")
                content_xml = archive.read(_CONTENT_PART)
                meta_xml = archive.read(_META_PART) if _META_PART in names else None
        except BadZipFile as exc:
            raise FormatInvalid(context.file_path, f"Invalid ODT archive: {exc}") from exc
        except OSError as exc:
            raise OpenFailure(context.file_path, f"Cannot open ODT: {exc}") from exc

        parser = etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False, huge_tree=False)
        try:
            root = etree.fromstring(content_xml, parser=parser)
        except etree.XMLSyntaxError as exc:
            raise FormatInvalid(context.file_path, f"Malformed {_CONTENT_PART}: {exc}") from exc

        buffer = DocumentBuffer(context.display_unit)
        walker = _OdtWalker(buffer)
        for body in root.xpath("//*[local-name()='body']/*[local-name()='text']"):
            walker.element(body)
        require_content(buffer, context.file_path, "ODT", [])

        title, author = self._read_meta(meta_xml, parser)
        return Document(
            title=title or title_from_path(context.file_path),
            author=author or "",
            buffer=buffer,
            toc_items=build_toc_from_buffer(buffer),
            id_positions=walker.id_positions,
        )

    def _read_meta(self, meta_xml: bytes | None, parser: etree.XMLParser) -> tuple[str | None, str | None]:
        if not meta_xml:
            return None, None
        try:
            meta = etree.fromstring(meta_xml, parser=parser)
        except etree.XMLSyntaxError:
            return None, None
        title = meta.xpath("string(//*[local-name()='meta']/*[local-name()='title'])")
        author = meta.xpath(
            "string(//*[local-name()='meta']/*[local-name()='initial-creator' or local-name()='creator'])"
        )
        return normalize_whitespace(title) or None, normalize_whitespace(author) or None
