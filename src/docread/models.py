"""Canonical entities shared by the buffer, extractors and the host surface."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, Flag
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from docread.config import ParserSettings


class DisplayUnit(str, Enum):
    """Unit in which the host addresses the flattened text."""

    CODEPOINT = "codepoint"
    UTF16 = "utf16"


class MarkerType(Enum):
    HEADING1 = 0
    HEADING2 = 1
    HEADING3 = 2
    HEADING4 = 3
    HEADING5 = 4
    HEADING6 = 5
    PAGE_BREAK = 6
    SECTION_BREAK = 7
    TOC_ITEM = 8
    LINK = 9
    LIST = 10
    LIST_ITEM = 11

    @property
    def is_heading(self) -> bool:
        return self.value <= MarkerType.HEADING6.value

    @property
    def heading_level(self) -> int | None:
        return self.value + 1 if self.is_heading else None

    @classmethod
    def heading(cls, level: int) -> "MarkerType":
        """Map a heading depth to its marker type, clamping into 1..6."""

        clamped = max(1, min(level, 6))
        return cls(clamped - 1)


@dataclass(slots=True)
class Marker:
    """Positioned annotation over the flattened text."""

    marker_type: MarkerType
    position: int
    text: str = ""
    reference: str = ""
    level: int = 0


@dataclass(slots=True)
class TocItem:
    """One navigation outline node.

    ``offset`` is ``None`` while the reference is unresolved; callers treat such
    items as non-navigable.
    """

    name: str
    reference: str = ""
    offset: int | None = None
    children: list[TocItem] = field(default_factory=list)

    def add_child(self, child: TocItem) -> None:
        self.children.append(child)

    def walk(self):
        """Yield this node and its descendants in pre-order."""

        yield self
        for child in self.children:
            yield from child.walk()


class ParserFlags(Flag):
    NONE = 0
    SUPPORTS_SECTIONS = 1
    SUPPORTS_TOC = 2
    SUPPORTS_PAGES = 4
    SUPPORTS_LISTS = 8


@dataclass(frozen=True, slots=True)
class ParserContext:
    """Immutable input of a single parse call."""

    file_path: str
    password: str | None = None
    display_unit: DisplayUnit = DisplayUnit.CODEPOINT

    @classmethod
    def from_settings(
        cls,
        file_path: str,
        settings: ParserSettings,
        *,
        password: str | None = None,
    ) -> ParserContext:
        return cls(file_path=str(file_path), password=password, display_unit=settings.display_unit)
