"""Parsed document aggregate returned to the host."""

from __future__ import annotations

from dataclasses import dataclass, field

from docread.buffer import DocumentBuffer, display_len
from docread.models import DisplayUnit, Marker, TocItem
from docread.references import ReferenceResolver


def _count_lines(text: str) -> int:
    # Only "\n" ends a line; form feeds and other separators stay inside it
    if not text:
        return 0
    return text.count("\n") + (0 if text.endswith("\n") else 1)


@dataclass(slots=True)
class DocumentStats:
    """Counts derived once from the final flattened text."""

    word_count: int = 0
    line_count: int = 0
    char_count: int = 0

    @classmethod
    def from_text(cls, text: str, unit: DisplayUnit = DisplayUnit.CODEPOINT) -> DocumentStats:
        return cls(
            word_count=len(text.split()),
            line_count=_count_lines(text),
            char_count=display_len(text, unit),
        )


@dataclass(slots=True)
class Document:
    """Canonical parse output: flattened text, markers, outline and anchors."""

    title: str = ""
    author: str = ""
    buffer: DocumentBuffer = field(default_factory=DocumentBuffer)
    toc_items: list[TocItem] = field(default_factory=list)
    id_positions: dict[str, int] = field(default_factory=dict)
    section_positions: dict[str, int] = field(default_factory=dict)
    spine_items: list[str] = field(default_factory=list)
    manifest_items: dict[str, str] = field(default_factory=dict)
    stats: DocumentStats = field(default_factory=DocumentStats)
    skipped_items: list[str] = field(default_factory=list)

    @property
    def content(self) -> str:
        return self.buffer.content

    @property
    def markers(self) -> list[Marker]:
        return self.buffer.markers

    def compute_stats(self) -> None:
        self.stats = DocumentStats.from_text(self.buffer.content, self.buffer.unit)

    def resolve(self, reference: str, *, base: str | None = None) -> int | None:
        """Map a native reference to an absolute offset, or ``None`` if unresolved."""

        resolver = ReferenceResolver(self.id_positions, self.section_positions)
        return resolver.resolve(reference, base=base)
