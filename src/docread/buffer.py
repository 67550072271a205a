"""Position-tracked text buffer that every extractor writes into."""

from __future__ import annotations

from docread.models import DisplayUnit, Marker, MarkerType


def display_len(text: str, unit: DisplayUnit = DisplayUnit.CODEPOINT) -> int:
    """Return the length of *text* in the host's text-addressing unit."""

    if unit is DisplayUnit.UTF16:
        # Astral code points occupy two UTF-16 units
        return len(text) + sum(1 for char in text if ord(char) > 0xFFFF)
    return len(text)


class DocumentBuffer:
    """Append-only flattened text plus the ordered markers placed over it.

    ``current_position`` grows by the display length of each appended chunk and
    never decreases, so any position reported earlier stays a valid offset into
    the final ``content``.
    """

    def __init__(self, unit: DisplayUnit = DisplayUnit.CODEPOINT) -> None:
        self._unit = unit
        self._parts: list[str] = []
        self._joined: str | None = ""
        self._position = 0
        self._last_char = ""
        self._markers: list[Marker] = []

    @classmethod
    def with_content(cls, content: str, unit: DisplayUnit = DisplayUnit.CODEPOINT) -> DocumentBuffer:
        buffer = cls(unit)
        buffer.append(content)
        return buffer

    @property
    def unit(self) -> DisplayUnit:
        return self._unit

    @property
    def content(self) -> str:
        if self._joined is None:
            self._joined = "".join(self._parts)
            self._parts = [self._joined]
        return self._joined

    @property
    def markers(self) -> list[Marker]:
        return self._markers

    def current_position(self) -> int:
        return self._position

    def is_empty(self) -> bool:
        return self._position == 0

    def ends_with_newline(self) -> bool:
        return self._last_char == "\n"

    def last_char(self) -> str:
        return self._last_char

    def display_len(self, text: str) -> int:
        return display_len(text, self._unit)

    def append(self, text: str) -> None:
        if not text:
            return
        self._parts.append(text)
        self._joined = None
        self._position += display_len(text, self._unit)
        self._last_char = text[-1]

    def ensure_newline(self) -> None:
        """Terminate the current line unless the buffer is empty or already does."""

        if self._position and self._last_char != "\n":
            self.append("\n")

    def add_marker(self, marker: Marker) -> None:
        self._markers.append(marker)

    def mark(
        self,
        marker_type: MarkerType,
        position: int | None = None,
        *,
        text: str = "",
        reference: str = "",
        level: int = 0,
    ) -> Marker:
        """Record a marker, defaulting to the current position."""

        marker = Marker(
            marker_type=marker_type,
            position=self._position if position is None else position,
            text=text,
            reference=reference,
            level=level,
        )
        self._markers.append(marker)
        return marker

    def sorted_markers(self) -> list[Marker]:
        """Markers ordered by position; insertion order breaks ties."""

        return sorted(self._markers, key=lambda marker: marker.position)

    def markers_of(self, *marker_types: MarkerType) -> list[Marker]:
        wanted = set(marker_types)
        return [marker for marker in self._markers if marker.marker_type in wanted]
