from __future__ import annotations

import pytest

from docread.buffer import DocumentBuffer
from docread.config import ParserSettings
from docread.document import Document, DocumentStats
from docread.errors import EmptyInput, ParseError, PasswordRequired
from docread.models import DisplayUnit, MarkerType, ParserContext, ParserFlags


def test_stats_count_words_lines_and_display_units() -> None:
    text = "One two\nthree 🙂\n\n  four"

    codepoints = DocumentStats.from_text(text)
    utf16 = DocumentStats.from_text(text, DisplayUnit.UTF16)

    assert codepoints.word_count == 5
    assert codepoints.line_count == 4
    assert codepoints.char_count == len(text)
    assert utf16.char_count == len(text) + 1


def test_line_count_splits_on_newlines_only() -> None:
    assert DocumentStats.from_text("page one\x0cpage two\nnext same line\n").line_count == 2
    assert DocumentStats.from_text("trailing\n").line_count == 1
    assert DocumentStats.from_text("\n").line_count == 1
    assert DocumentStats.from_text("").line_count == 0


def test_document_compute_stats_uses_buffer_unit() -> None:
    document = Document(buffer=DocumentBuffer.with_content("a😀", DisplayUnit.UTF16))

    document.compute_stats()

    assert document.stats.char_count == 3
    assert document.stats.word_count == 1
    assert document.content == "a😀"


def test_document_resolve_uses_anchor_and_section_tables() -> None:
    document = Document(id_positions={"/a.html#x": 12}, section_positions={"/a.html": 3})

    assert document.resolve("A.html#x") == 12
    assert document.resolve("a.html#y") == 3
    assert document.resolve("#x", base="a.html") == 12
    assert document.resolve("b.html") is None


@pytest.mark.parametrize(
    ("level", "expected"),
    [(1, MarkerType.HEADING1), (3, MarkerType.HEADING3), (6, MarkerType.HEADING6), (9, MarkerType.HEADING6), (0, MarkerType.HEADING1)],
)
def test_heading_marker_type_clamps_levels(level: int, expected: MarkerType) -> None:
    assert MarkerType.heading(level) is expected


def test_marker_type_values_and_heading_levels() -> None:
    assert [member.value for member in MarkerType] == list(range(12))
    assert MarkerType.HEADING4.heading_level == 4
    assert MarkerType.LINK.heading_level is None
    assert not MarkerType.LIST_ITEM.is_heading


def test_parser_flags_behave_as_a_set() -> None:
    flags = ParserFlags.SUPPORTS_TOC | ParserFlags.SUPPORTS_PAGES

    assert ParserFlags.SUPPORTS_TOC in flags
    assert ParserFlags.SUPPORTS_LISTS not in flags
    assert ParserFlags.NONE.value == 0


def test_context_from_settings_carries_display_unit() -> None:
    settings = ParserSettings(display_unit=DisplayUnit.UTF16)

    context = ParserContext.from_settings("book.pdf", settings, password="pw")

    assert context == ParserContext(file_path="book.pdf", password="pw", display_unit=DisplayUnit.UTF16)


def test_parse_errors_render_message_with_path() -> None:
    error = PasswordRequired("secret.pdf", "Password required or incorrect")

    assert isinstance(error, ParseError)
    assert str(error) == "Password required or incorrect (path=secret.pdf)"
    assert not isinstance(EmptyInput("a", "b"), PasswordRequired)
