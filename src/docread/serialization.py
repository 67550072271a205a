"""Plain-data view of a parsed document for JSON and other flat boundaries.

The outline is flattened in pre-order. Every entry carries its ``depth`` and
the index of its parent entry, so the tree can be rebuilt without guessing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from docread.document import Document
from docread.models import Marker, TocItem


@dataclass(frozen=True, slots=True)
class FlatTocEntry:
    name: str
    reference: str
    offset: int | None
    depth: int
    parent_index: int | None


def flatten_toc(items: Iterable[TocItem]) -> list[FlatTocEntry]:
    entries: list[FlatTocEntry] = []

    def visit(item: TocItem, depth: int, parent_index: int | None) -> None:
        index = len(entries)
        entries.append(
            FlatTocEntry(
                name=item.name,
                reference=item.reference,
                offset=item.offset,
                depth=depth,
                parent_index=parent_index,
            )
        )
        for child in item.children:
            visit(child, depth + 1, index)

    for root in items:
        visit(root, 0, None)
    return entries


def unflatten_toc(entries: Iterable[FlatTocEntry]) -> list[TocItem]:
    """Rebuild the forest from :func:`flatten_toc` output."""

    nodes: list[TocItem] = []
    roots: list[TocItem] = []
    for entry in entries:
        node = TocItem(name=entry.name, reference=entry.reference, offset=entry.offset)
        nodes.append(node)
        if entry.parent_index is None:
            roots.append(node)
        elif 0 <= entry.parent_index < len(nodes) - 1:
            nodes[entry.parent_index].add_child(node)
        else:
            raise ValueError(f"TOC entry {entry.name!r} refers to unknown parent {entry.parent_index}")
    return roots


def marker_to_dict(marker: Marker) -> dict[str, Any]:
    return {
        "type": marker.marker_type.name,
        "position": marker.position,
        "text": marker.text,
        "reference": marker.reference,
        "level": marker.level,
    }


def document_to_dict(document: Document, *, include_content: bool = True) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "title": document.title,
        "author": document.author,
        "display_unit": document.buffer.unit.value,
        "stats": {
            "word_count": document.stats.word_count,
            "line_count": document.stats.line_count,
            "char_count": document.stats.char_count,
        },
        "markers": [marker_to_dict(marker) for marker in document.buffer.sorted_markers()],
        "toc": [
            {
                "name": entry.name,
                "reference": entry.reference,
                "offset": entry.offset,
                "depth": entry.depth,
                "parent_index": entry.parent_index,
            }
            for entry in flatten_toc(document.toc_items)
        ],
        "id_positions": dict(document.id_positions),
        "spine_items": list(document.spine_items),
        "manifest_items": dict(document.manifest_items),
        "skipped_items": list(document.skipped_items),
    }
    if include_content:
        payload["content"] = document.content
    return payload
