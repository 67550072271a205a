"""Compiled HTML Help (CHM) extractor.

The archive is read through ``pychm`` (the ``chm`` extra). Pages are flattened
in table-of-contents order, followed by any remaining pages sorted by path.
"""

from __future__ import annotations

import logging
import struct
from typing import Callable, Iterable, Protocol

from bs4 import BeautifulSoup, Tag

from docread.buffer import DocumentBuffer
from docread.document import Document
from docread.encoding import decode_bytes
from docread.errors import OpenFailure
from docread.extractors.base import emit_converted, ensure_readable, require_content, title_from_path
from docread.html_to_text import HtmlToText
from docread.models import ParserContext, ParserFlags, TocItem
from docread.references import ReferenceResolver, anchor_key, normalize_path, resolve_relative, split_reference

logger = logging.getLogger(__name__)

_SYSTEM_FILE = "/#SYSTEM"
_SYSTEM_TITLE_CODE = 3


class ChmSource(Protocol):
    """Open archive handle consumed by :class:`ChmExtractor`."""

    def list_files(self) -> list[str]:
        """Every object path in the archive."""

    def read(self, path: str) -> bytes | None:
        """Object contents, or ``None`` when the path cannot be resolved."""


class ChmArchive:
    """Scoped ``pychm`` handle; the archive is closed on every exit path."""

    def __init__(self, path: str) -> None:
        self._path = path
        self._file = None
        self._chmlib = None

    def __enter__(self) -> ChmArchive:
        try:
            from chm import chm, chmlib
        except ImportError as exc:
            raise OpenFailure(self._path, "CHM support unavailable: install 'pychm'") from exc

        handle = chm.CHMFile()
        if not handle.LoadCHM(self._path):
            raise OpenFailure(self._path, "Failed to open CHM file")
        self._file = handle
        self._chmlib = chmlib
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._file is not None:
            self._file.CloseCHM()
            self._file = None

    def list_files(self) -> list[str]:
        paths: list[str] = []

        def collect(_handle, unit, _context) -> int:
            paths.append(unit.path.decode("utf-8", errors="replace"))
            return self._chmlib.CHM_ENUMERATOR_CONTINUE

        self._chmlib.chm_enumerate(self._file.file, self._chmlib.CHM_ENUMERATE_ALL, collect, None)
        return paths

    def read(self, path: str) -> bytes | None:
        result, unit = self._file.ResolveObject(path.encode("utf-8"))
        if result != self._chmlib.CHM_RESOLVE_SUCCESS:
            return None
        size, content = self._file.RetrieveObject(unit)
        return content if size else b""


def parse_system_title(data: bytes) -> str | None:
    """Read the title record (code 3) from a ``#SYSTEM`` payload."""

    index = 4
    while index + 4 <= len(data):
        code, length = struct.unpack_from("<HH", data, index)
        if index + 4 + length > len(data):
            break
        if code == _SYSTEM_TITLE_CODE and length:
            raw = data[index + 4 : index + 4 + length].rstrip(b"\x00")
            title = decode_bytes(raw).strip() if raw else ""
            if title:
                return title
        index += 4 + length
    return None


def _sitemap_item(li: Tag) -> TocItem | None:
    name = ""
    local = ""
    params = [param for obj in li.find_all("object", recursive=False) for param in obj.find_all("param")]
    for param in params:
        key = str(param.get("name", "")).lower()
        if key == "name" and not name:
            name = str(param.get("value", ""))
        elif key == "local" and not local:
            local = str(param.get("value", ""))
    if not name:
        return None
    return TocItem(name=name, reference=local)


def _parse_hhc_list(ul: Tag) -> list[TocItem]:
    items: list[TocItem] = []
    for child in ul.find_all(["li", "ul"], recursive=False):
        if child.name == "ul":
            # A list that follows a closed <li> belongs to that item
            nested = _parse_hhc_list(child)
            if items:
                items[-1].children.extend(nested)
            else:
                items.extend(nested)
            continue

        nested = []
        for sub_list in child.find_all("ul", recursive=False):
            nested.extend(_parse_hhc_list(sub_list))
        item = _sitemap_item(child)
        if item is None:
            items.extend(nested)
            continue
        item.children.extend(nested)
        items.append(item)
    return items


def parse_hhc(markup: str) -> list[TocItem]:
    """Build the outline from an ``.hhc`` sitemap; offsets stay unresolved."""

    soup = BeautifulSoup(markup, "lxml")
    root = soup.body or soup
    lists = root.find_all("ul", recursive=False)
    if not lists:
        first = root.find("ul")
        lists = [first] if first is not None else []

    items: list[TocItem] = []
    for ul in lists:
        items.extend(_parse_hhc_list(ul))
    return items


def _toc_files(items: Iterable[TocItem]) -> list[str]:
    files: list[str] = []
    for root in items:
        for item in root.walk():
            path, _fragment = split_reference(item.reference)
            if path and path not in files:
                files.append(path)
    return files


def build_ordered_file_list(html_files: list[str], toc_items: list[TocItem]) -> list[str]:
    """Order pages as the outline visits them, then the rest in sorted order."""

    if not toc_items:
        return list(html_files)

    by_normalized = {normalize_path(path): path for path in html_files}
    ordered: list[str] = []
    seen: set[str] = set()
    for toc_file in _toc_files(toc_items):
        normalized = normalize_path(toc_file)
        actual = by_normalized.get(normalized)
        if actual is not None and normalized not in seen:
            seen.add(normalized)
            ordered.append(actual)
    for path in html_files:
        if normalize_path(path) not in seen:
            ordered.append(path)
    return ordered


def _is_page(path: str) -> bool:
    return ".htm" in path.lower() and "/#" not in path and "/$" not in path


def _pick_hhc(paths: list[str]) -> str | None:
    chosen: str | None = None
    for path in paths:
        lowered = path.lower()
        if ".hhc" in lowered and (chosen is None or "index.hhc" in lowered):
            chosen = path
    return chosen


class ChmExtractor:
    """Flatten every HTML page of a help archive into one document."""

    def __init__(self, archive_factory: Callable[[str], ChmSource] = ChmArchive) -> None:
        self._archive_factory = archive_factory

    def name(self) -> str:
        return "Compiled HTML Help files"

    def extensions(self) -> frozenset[str]:
        return frozenset({"chm"})

    def supported_flags(self) -> ParserFlags:
        return ParserFlags.SUPPORTS_TOC

    def parse(self, context: ParserContext) -> Document:
        path = str(ensure_readable(context))
        document = Document(buffer=DocumentBuffer(context.display_unit))

        with self._archive_factory(path) as archive:
            paths = archive.list_files()
            html_files = sorted(candidate for candidate in paths if _is_page(candidate))
            document.title = parse_system_title(archive.read(_SYSTEM_FILE) or b"") or title_from_path(
                context.file_path
            )

            hhc_path = _pick_hhc(paths)
            hhc_bytes = archive.read(hhc_path) if hhc_path else None
            document.toc_items = parse_hhc(decode_bytes(hhc_bytes)) if hhc_bytes else []

            for page_path in build_ordered_file_list(html_files, document.toc_items):
                self._extract_page(archive, page_path, document)

        require_content(document.buffer, context.file_path, "CHM", document.skipped_items, item_kind="files")

        resolver = ReferenceResolver(document.id_positions, document.section_positions)
        for root in document.toc_items:
            for item in root.walk():
                if item.reference:
                    item.offset = resolver.resolve(item.reference)
        return document

    def _extract_page(self, archive: ChmSource, page_path: str, document: Document) -> None:
        content = archive.read(page_path)
        if content is None:
            logger.warning("Skipping unreadable CHM page %s", page_path)
            document.skipped_items.append(page_path)
            return
        if not content:
            return

        try:
            converted = HtmlToText(document.buffer.unit).convert(decode_bytes(content))
        except Exception as exc:
            logger.warning("Skipping CHM page %s: %s", page_path, exc)
            document.skipped_items.append(f"{page_path} ({exc})")
            return

        buffer = document.buffer
        buffer.ensure_newline()
        start = buffer.current_position()
        document.section_positions[normalize_path(page_path)] = start
        emit_converted(buffer, converted, link_reference=lambda href: resolve_relative(page_path, href))
        for anchor, offset in converted.id_positions.items():
            document.id_positions[anchor_key(page_path, anchor)] = start + offset
        buffer.ensure_newline()
