"""Shared extractor contract and helpers used by every format implementation."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Protocol, runtime_checkable

from docread.buffer import DocumentBuffer
from docread.document import Document
from docread.errors import EmptyInput, FormatInvalid, OpenFailure
from docread.html_to_text import ConvertedText
from docread.models import Marker, MarkerType, ParserContext, ParserFlags


@runtime_checkable
class DocumentExtractor(Protocol):
    """Protocol that every format extractor must implement."""

    def name(self) -> str:
        """Human-readable format name shown to callers."""

    def extensions(self) -> frozenset[str]:
        """Lowercase extensions without the leading dot."""

    def supported_flags(self) -> ParserFlags:
        """Static capability set of this format."""

    def parse(self, context: ParserContext) -> Document:
        """Extract a fresh :class:`Document` or raise a ``ParseError`` subclass."""


def title_from_path(path: str | Path) -> str:
    return Path(path).stem or "Untitled"


def ensure_readable(context: ParserContext) -> Path:
    """Check that the source exists and is non-empty before a library opens it."""

    path = Path(context.file_path)
    try:
        size = path.stat().st_size
    except OSError as exc:
        raise OpenFailure(context.file_path, f"Cannot open file: {exc.strerror or exc}") from exc
    if not path.is_file():
        raise OpenFailure(context.file_path, "Path is not a regular file")
    if size == 0:
        raise EmptyInput(context.file_path, "File is empty")
    return path


def read_source_bytes(context: ParserContext) -> bytes:
    path = ensure_readable(context)
    try:
        return path.read_bytes()
    except OSError as exc:
        raise OpenFailure(context.file_path, f"Cannot read file: {exc.strerror or exc}") from exc


def emit_converted(
    buffer: DocumentBuffer,
    converted: ConvertedText,
    *,
    link_reference: Callable[[str], str] | None = None,
) -> int:
    """Append converted markup to *buffer* and place its markers.

    Side-table offsets are shifted by the position at which the text lands.
    Returns that start position.
    """

    start = buffer.current_position()
    buffer.append(converted.text)

    markers: list[Marker] = []
    for heading in converted.headings:
        markers.append(
            Marker(
                MarkerType.heading(heading.level),
                start + heading.offset,
                text=heading.text,
                level=heading.level,
            )
        )
    for link in converted.links:
        reference = link_reference(link.reference) if link_reference else link.reference
        markers.append(Marker(MarkerType.LINK, start + link.offset, text=link.text, reference=reference))
    for html_list in converted.lists:
        markers.append(Marker(MarkerType.LIST, start + html_list.offset, level=html_list.item_count))
    for item in converted.list_items:
        markers.append(Marker(MarkerType.LIST_ITEM, start + item.offset, text=item.text, level=item.level))

    for marker in sorted(markers, key=lambda marker: marker.position):
        buffer.add_marker(marker)
    return start


def require_content(
    buffer: DocumentBuffer,
    path: str,
    label: str,
    skipped: list[str],
    *,
    item_kind: str = "items",
) -> None:
    """Fail the parse when nothing readable was extracted.

    The message names the sub-items that were skipped, if any.
    """

    if buffer.content.strip():
        return
    if skipped:
        raise FormatInvalid(path, f"{label} has no readable content (failed to convert {item_kind}: {', '.join(skipped)})")
    raise EmptyInput(path, f"{label} has no readable content")
