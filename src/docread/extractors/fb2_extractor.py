"""FB2 extractor with raw and zipped container support."""

from __future__ import annotations

from io import BytesIO
from pathlib import Path
from zipfile import BadZipFile, ZipFile

from lxml import etree

from docread.buffer import DocumentBuffer
from docread.document import Document
from docread.errors import FormatInvalid
from docread.extractors.base import read_source_bytes, require_content, title_from_path
from docread.models import MarkerType, ParserContext, ParserFlags
from docread.normalization import normalize_whitespace
from docread.text_flow import TextFlow
from docread.toc import build_toc_from_buffer

_ZIP_MAGIC = b"PK\x03\x04"
_CLOSING_TAG = b"</FictionBook>"
_XLINK_HREF = "{http://www.w3.org/1999/xlink}href"

_BLOCK_TAGS = frozenset(
    {"p", "v", "subtitle", "text-author", "date", "epigraph", "cite", "poem", "stanza", "annotation", "table", "tr"}
)
_SKIP_TAGS = frozenset({"binary", "description", "image"})


def _local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


class _Fb2Walker:
    def __init__(self, buffer: DocumentBuffer) -> None:
        self.buffer = buffer
        self.flow = TextFlow(buffer)
        self.id_positions: dict[str, int] = {}
        self._depth = 0

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

        if name in _BLOCK_TAGS or name in {"section", "title", "body", "empty-line"}:
            self.flow.block_break()
        anchor = element.get("id")
        if anchor:
            self.id_positions[anchor] = self.buffer.current_position()

        if name == "section":
            self.flow.block_break()
            self.buffer.mark(MarkerType.SECTION_BREAK)
            self._depth += 1
            self.walk_children(element)
            self._depth -= 1
            self.flow.block_break()
        elif name == "title":
            self._title(element)
        elif name == "empty-line":
            self.flow.block_break()
            self.flow.line_break()
        elif name == "a":
            self._link(element)
        elif name in {"td", "th"}:
            self.flow.space()
            self.walk_children(element)
            self.flow.space()
        elif name in _BLOCK_TAGS or name == "body":
            self.flow.block_break()
            self.walk_children(element)
            self.flow.block_break()
        else:
            self.walk_children(element)

    def _title(self, element: etree._Element) -> None:
        text = normalize_whitespace(" ".join(element.itertext()))
        self.flow.block_break()
        if text:
            level = max(self._depth, 1)
            self.buffer.mark(MarkerType.heading(level), text=text, level=min(level, 6))
        self.walk_children(element)
        self.flow.block_break()

    def _link(self, element: etree._Element) -> None:
        href = element.get(_XLINK_HREF) or element.get("href") or ""
        text = normalize_whitespace(" ".join(element.itertext()))
        if not href or not text:
            self.walk_children(element)
            return
        self.flow.flush_space()
        self.buffer.mark(MarkerType.LINK, text=text, reference=href)
        self.walk_children(element)


class Fb2Extractor:
    """Extract text, sections and metadata from FictionBook sources."""

    def name(self) -> str:
        return "FictionBook Documents"

    def extensions(self) -> frozenset[str]:
        return frozenset({"fb2", "fbz"})

    def supported_flags(self) -> ParserFlags:
        return ParserFlags.SUPPORTS_TOC | ParserFlags.SUPPORTS_SECTIONS

    def parse(self, context: ParserContext) -> Document:
        xml_bytes = self._read_fb2_payload(context)
        root = self._parse_xml(context.file_path, xml_bytes)

        for binary in root.xpath("//*[local-name()='binary']"):
            binary.getparent().remove(binary)

        buffer = DocumentBuffer(context.display_unit)
        walker = _Fb2Walker(buffer)
        for body in root.xpath("/*/*[local-name()='body']"):
            walker.element(body)
        require_content(buffer, context.file_path, "FB2", [])

        return Document(
            title=self._first_text(root.xpath("//*[local-name()='title-info']/*[local-name()='book-title']"))
            or title_from_path(context.file_path),
            author=self._extract_author(root) or "",
            buffer=buffer,
            toc_items=build_toc_from_buffer(buffer),
            id_positions=walker.id_positions,
        )

    def _read_fb2_payload(self, context: ParserContext) -> bytes:
        raw = read_source_bytes(context)
        if raw.startswith(_ZIP_MAGIC) or Path(context.file_path).suffix.lower() == ".fbz":
            raw = self._extract_from_zip(context.file_path, raw)

        end = raw.rfind(_CLOSING_TAG)
        if end != -1:
            raw = raw[: end + len(_CLOSING_TAG)]
        return raw

    def _extract_from_zip(self, path: str, raw: bytes) -> bytes:
        try:
            with ZipFile(BytesIO(raw), "r") as archive:
                candidates = [name for name in archive.namelist() if not name.endswith("/")]
                fb2_name = next((name for name in candidates if name.lower().endswith(".fb2")), None)
                target = fb2_name or (candidates[0] if candidates else None)
                if not target:
                    raise FormatInvalid(path, "Zipped FB2 container has no readable files")
                return archive.read(target)
        except BadZipFile as exc:
            raise FormatInvalid(path, f"Invalid zipped FB2 container: {exc}") from exc

    def _parse_xml(self, path: str, xml_bytes: bytes) -> etree._Element:
        parser = etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False, huge_tree=False)
        try:
            return etree.fromstring(xml_bytes, parser=parser)
        except etree.XMLSyntaxError as exc:
            raise FormatInvalid(path, f"Malformed FB2 XML: {exc}") from exc

    def _extract_author(self, root: etree._Element) -> str | None:
        authors = root.xpath("//*[local-name()='title-info']/*[local-name()='author']")
        names: list[str] = []
        for author in authors:
            first = self._first_text(author.xpath("./*[local-name()='first-name']"))
            middle = self._first_text(author.xpath("./*[local-name()='middle-name']"))
            last = self._first_text(author.xpath("./*[local-name()='last-name']"))
            full = normalize_whitespace(" ".join(part for part in [first, middle, last] if part))
            if full:
                names.append(full)
        return ", ".join(names) if names else None

    def _first_text(self, nodes: list[object]) -> str | None:
        for node in nodes:
            if hasattr(node, "itertext"):
                text = normalize_whitespace(" ".join(node.itertext()))
            else:
                text = normalize_whitespace(str(node))
            if text:
                return text
        return None
