"""Whitespace-collapsing writer for markup walkers."""

from __future__ import annotations

from docread.buffer import DocumentBuffer
from docread.normalization import collapse_whitespace


class TextFlow:
    """Write markup text runs into a buffer the way a browser lays them out.

    Runs of whitespace collapse to one space, a space is only emitted between
    two pieces of visible text on the same line, and block boundaries produce a
    single newline. Trailing spaces are never written.
    """

    def __init__(self, buffer: DocumentBuffer) -> None:
        self.buffer = buffer
        self.pending_space = False

    def position(self) -> int:
        return self.buffer.current_position()

    def text(self, raw: str) -> None:
        collapsed = collapse_whitespace(raw)
        if collapsed.startswith(" "):
            self.pending_space = True
            collapsed = collapsed[1:]
        if not collapsed:
            return
        trailing = collapsed.endswith(" ")
        if trailing:
            collapsed = collapsed[:-1]

        self.flush_space()
        self.buffer.append(collapsed)
        self.pending_space = trailing

    def preformatted(self, raw: str) -> None:
        self.pending_space = False
        self.buffer.append(raw.replace("\r\n", "\n"))

    def flush_space(self) -> None:
        if self.pending_space and not self.buffer.is_empty() and self.buffer.last_char() not in ("\n", " "):
            self.buffer.append(" ")
        self.pending_space = False

    def space(self) -> None:
        self.pending_space = True

    def block_break(self) -> None:
        self.pending_space = False
        self.buffer.ensure_newline()

    def line_break(self) -> None:
        self.pending_space = False
        self.buffer.append("\n")
