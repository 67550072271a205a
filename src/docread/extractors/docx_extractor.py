"""Word (DOCX/DOCM) extractor reading WordprocessingML straight from the zip."""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from zipfile import BadZipFile, ZipFile

from lxml import etree

from docread.buffer import DocumentBuffer, display_len
from docread.document import Document
from docread.errors import FormatInvalid, OpenFailure
from docread.extractors.base import ensure_readable, require_content, title_from_path
from docread.models import Marker, MarkerType, ParserContext, ParserFlags
from docread.normalization import normalize_whitespace
from docread.toc import build_toc_from_buffer

_W = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
_R = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
_HYPERLINK_REL = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/hyperlink"

_DOCUMENT_PART = "word/document.xml"
_RELS_PART = "word/_rels/document.xml.rels"
_CORE_PART = "docProps/core.xml"

_MAX_HEADING_LEVEL = 9
_DIGITS_RE = re.compile(r"\d+")
_QUOTED_RE = re.compile(r'"([^"]*)"')


def _w(name: str) -> str:
    return f"{{{_W}}}{name}"


def _local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


def _style_level(style: str, *, run_style: bool = False) -> int:
    lowered = style.lower()
    if not lowered.startswith("heading"):
        return 0
    if run_style and not lowered.endswith("char"):
        return 0
    match = _DIGITS_RE.search(style)
    if not match:
        return 0
    level = int(match.group())
    return level if 0 < level <= _MAX_HEADING_LEVEL else 0


def paragraph_heading_level(ppr: etree._Element) -> int:
    """Heading depth declared by a ``w:pPr`` block, or 0."""

    for child in ppr:
        if not isinstance(child.tag, str):
            continue
        name = _local_name(child)
        if name == "pStyle":
            level = _style_level(child.get(_w("val"), ""))
            if level:
                return level
        elif name == "outlineLvl":
            raw = child.get(_w("val"), "")
            if raw.isdigit() and 0 < int(raw) + 1 <= _MAX_HEADING_LEVEL:
                return int(raw) + 1
    return 0


def run_heading_level(run: etree._Element) -> int:
    style = run.find(f"{_w('rPr')}/{_w('rStyle')}")
    if style is None:
        return 0
    return _style_level(style.get(_w("val"), ""), run_style=True)


def parse_hyperlink_instruction(instruction: str) -> str:
    """Target of a ``HYPERLINK`` field code; ``\\l`` marks an in-document anchor."""

    match = _QUOTED_RE.search(instruction)
    if not match or not match.group(1):
        return ""
    target = match.group(1)
    if "\\l" in instruction:
        return f"#{target}"
    return target


def _run_text(run: etree._Element) -> str:
    parts: list[str] = []
    for child in run:
        if not isinstance(child.tag, str):
            continue
        name = _local_name(child)
        if name == "t":
            parts.append(child.text or "")
        elif name == "tab":
            parts.append("\t")
        elif name in {"br", "cr"}:
            parts.append("\n")
    return "".join(parts)


@dataclass(slots=True)
class _PendingLink:
    offset: int
    text: str
    reference: str


@dataclass(slots=True)
class _Paragraph:
    """Paragraph text with anchors and links at character offsets into it."""

    text: str = ""
    heading_level: int = 0
    style_heading: bool = False
    run_heading_text: dict[int, str] = field(default_factory=dict)
    bookmarks: list[tuple[str, int]] = field(default_factory=list)
    links: list[_PendingLink] = field(default_factory=list)
    field_instruction: str | None = None
    field_start: int | None = None

    def add_run(self, run: etree._Element) -> None:
        level = run_heading_level(run)
        text = _run_text(run)
        if level:
            if not self.heading_level:
                self.heading_level = level
            self.run_heading_text[level] = self.run_heading_text.get(level, "") + text
        self.text += text


class DocxExtractor:
    """Flatten paragraphs of ``word/document.xml`` in document order."""

    def name(self) -> str:
        return "Word Documents"

    def extensions(self) -> frozenset[str]:
        return frozenset({"docx", "docm"})

    def supported_flags(self) -> ParserFlags:
        return ParserFlags.SUPPORTS_TOC

    def parse(self, context: ParserContext) -> Document:
        path = ensure_readable(context)
        try:
            with ZipFile(path, "r") as archive:
                names = set(archive.namelist())
                if _DOCUMENT_PART not in names:
                    raise FormatInvalid(context.file_path, f"DOCX archive has no {_DOCUMENT_PART}")
                body_xml = archive.read(_DOCUMENT_PART)
                rels_xml = archive.read(_RELS_PART) if _RELS_PART in names else None
                core_xml = archive.read(_CORE_PART) if _CORE_PART in names else None
        except BadZipFile as exc:
            raise FormatInvalid(context.file_path, f"Invalid DOCX archive: {exc}") from exc
        except OSError as exc:
            raise OpenFailure(context.file_path, f"Cannot open DOCX: {exc}") from exc

        parser = etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False, huge_tree=False)
        try:
            root = etree.fromstring(body_xml, parser=parser)
        except etree.XMLSyntaxError as exc:
            raise FormatInvalid(context.file_path, f"Malformed {_DOCUMENT_PART}: {exc}") from exc

        relationships = self._read_relationships(rels_xml, parser)
        title, author = self._read_core_properties(core_xml, parser)

        buffer = DocumentBuffer(context.display_unit)
        id_positions: dict[str, int] = {}
        for paragraph in root.iter(_w("p")):
            self._emit_paragraph(buffer, id_positions, self._collect_paragraph(paragraph, relationships))
        require_content(buffer, context.file_path, "DOCX", [])

        return Document(
            title=title or title_from_path(context.file_path),
            author=author or "",
            buffer=buffer,
            toc_items=build_toc_from_buffer(buffer),
            id_positions=id_positions,
        )

    def _read_relationships(self, rels_xml: bytes | None, parser: etree.XMLParser) -> dict[str, str]:
        if not rels_xml:
            return {}
        try:
            rels_root = etree.fromstring(rels_xml, parser=parser)
        except etree.XMLSyntaxError:
            return {}
        relationships: dict[str, str] = {}
        for node in rels_root:
            if not isinstance(node.tag, str) or _local_name(node) != "Relationship":
                continue
            rel_id = node.get("Id", "")
            target = node.get("Target", "")
            if node.get("Type") == _HYPERLINK_REL and rel_id and target:
                relationships[rel_id] = target
        return relationships

    def _read_core_properties(
        self, core_xml: bytes | None, parser: etree.XMLParser
    ) -> tuple[str | None, str | None]:
        if not core_xml:
            return None, None
        try:
            core = etree.fromstring(core_xml, parser=parser)
        except etree.XMLSyntaxError:
            return None, None
        title = core.xpath("string(*[local-name()='title'])")
        author = core.xpath("string(*[local-name()='creator'])")
        return normalize_whitespace(title) or None, normalize_whitespace(author) or None

    def _collect_paragraph(self, element: etree._Element, relationships: dict[str, str]) -> _Paragraph:
        paragraph = _Paragraph()
        for child in element:
            if not isinstance(child.tag, str):
                continue
            name = _local_name(child)
            if name == "pPr":
                level = paragraph_heading_level(child)
                if level:
                    paragraph.heading_level = level
                    paragraph.style_heading = True
            elif name == "bookmarkStart":
                bookmark = child.get(_w("name"))
                if bookmark and bookmark != "_GoBack":
                    paragraph.bookmarks.append((bookmark, len(paragraph.text)))
            elif name == "hyperlink":
                self._collect_hyperlink(paragraph, child, relationships)
            elif name == "r":
                self._collect_run(paragraph, child)
        return paragraph

    def _collect_hyperlink(
        self, paragraph: _Paragraph, element: etree._Element, relationships: dict[str, str]
    ) -> None:
        rel_id = element.get(f"{{{_R}}}id")
        anchor = element.get(_w("anchor"))
        if rel_id:
            target = relationships.get(rel_id, "")
        elif anchor:
            target = f"#{anchor}"
        else:
            target = ""

        start = len(paragraph.text)
        for run in element.iter(_w("r")):
            paragraph.add_run(run)
        link_text = paragraph.text[start:]
        if target and link_text.strip():
            paragraph.links.append(_PendingLink(offset=start, text=link_text.strip(), reference=target))

    def _collect_run(self, paragraph: _Paragraph, run: etree._Element) -> None:
        field_char = run.find(_w("fldChar"))
        if field_char is not None:
            kind = field_char.get(_w("fldCharType"))
            if kind == "begin":
                paragraph.field_instruction = ""
                paragraph.field_start = None
            elif kind == "separate":
                paragraph.field_start = len(paragraph.text)
            elif kind == "end":
                self._close_field(paragraph)
            return

        instruction = run.find(_w("instrText"))
        if instruction is not None:
            if paragraph.field_instruction is not None:
                paragraph.field_instruction += instruction.text or ""
            return

        paragraph.add_run(run)

    def _close_field(self, paragraph: _Paragraph) -> None:
        instruction = paragraph.field_instruction or ""
        start = paragraph.field_start
        paragraph.field_instruction = None
        paragraph.field_start = None
        if start is None or "HYPERLINK" not in instruction:
            return
        target = parse_hyperlink_instruction(instruction)
        text = paragraph.text[start:].strip()
        if target and text:
            paragraph.links.append(_PendingLink(offset=start, text=text, reference=target))

    def _emit_paragraph(
        self, buffer: DocumentBuffer, id_positions: dict[str, int], paragraph: _Paragraph
    ) -> None:
        raw = paragraph.text
        trimmed = raw.strip()
        lead = len(raw) - len(raw.lstrip())
        start = buffer.current_position()

        def position(char_offset: int) -> int:
            relative = min(max(char_offset - lead, 0), len(trimmed))
            return start + display_len(trimmed[:relative], buffer.unit)

        buffer.append(trimmed)
        buffer.append("\n")

        for bookmark, offset in paragraph.bookmarks:
            id_positions[bookmark] = position(offset)

        markers: list[Marker] = []
        if paragraph.heading_level and trimmed:
            if paragraph.style_heading:
                heading_text = normalize_whitespace(trimmed)
            else:
                heading_text = normalize_whitespace(paragraph.run_heading_text.get(paragraph.heading_level, ""))
            if heading_text:
                level = min(paragraph.heading_level, 6)
                markers.append(Marker(MarkerType.heading(level), start, text=heading_text, level=level))
        for link in paragraph.links:
            markers.append(Marker(MarkerType.LINK, position(link.offset), text=link.text, reference=link.reference))

        for marker in sorted(markers, key=lambda marker: marker.position):
            buffer.add_marker(marker)
