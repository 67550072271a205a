"""Table-of-contents synthesis from flat, ordered heading records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from docread.buffer import DocumentBuffer
from docread.models import TocItem


@dataclass(slots=True)
class HeadingInfo:
    """Heading record in document order; ``offset`` is relative to its source."""

    text: str
    level: int
    offset: int
    anchor: str = ""


def nest_by_level(entries: Iterable[tuple[int, TocItem]]) -> list[TocItem]:
    """Nest ``(level, item)`` pairs into a forest.

    A node becomes the child of the nearest preceding node with a strictly
    smaller level. Level gaps never produce placeholder nodes: an H3 right after
    an H1 nests directly under that H1.
    """

    roots: list[TocItem] = []
    stack: list[tuple[int, TocItem]] = []

    for level, item in entries:
        while stack and stack[-1][0] >= level:
            stack.pop()
        if stack:
            stack[-1][1].add_child(item)
        else:
            roots.append(item)
        stack.append((level, item))

    return roots


def build_toc_from_headings(headings: Iterable[HeadingInfo]) -> list[TocItem]:
    return nest_by_level(
        (heading.level, TocItem(name=heading.text, offset=heading.offset)) for heading in headings
    )


def headings_from_buffer(buffer: DocumentBuffer) -> list[HeadingInfo]:
    headings: list[HeadingInfo] = []
    for marker in buffer.markers:
        level = marker.marker_type.heading_level
        if level is None:
            continue
        headings.append(HeadingInfo(text=marker.text, level=level, offset=marker.position))
    return headings


def build_toc_from_buffer(buffer: DocumentBuffer) -> list[TocItem]:
    """Synthesize an outline from the heading markers already in *buffer*."""

    return build_toc_from_headings(headings_from_buffer(buffer))
