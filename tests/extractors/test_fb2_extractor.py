from __future__ import annotations

from pathlib import Path
import zipfile

import pytest

from docread.errors import FormatInvalid
from docread.extractors import Fb2Extractor
from docread.models import MarkerType, ParserContext

_FB2 = """<?xml version="1.0" encoding="utf-8"?>
<FictionBook xmlns="http://www.gribuser.ru/xml/fictionbook/2.0" xmlns:l="http://www.w3.org/1999/xlink">
  <description>
    <title-info>
      <author><first-name>Lev</first-name><middle-name>N.</middle-name><last-name>Tolstoy</last-name></author>
      <author><first-name>Co</first-name><last-name>Writer</last-name></author>
      <book-title>War and Peace</book-title>
    </title-info>
  </description>
  <body>
    <section id="part1">
      <title><p>Part One</p></title>
      <p>Well, Prince, so <a l:href="#note1">Genoa</a> and Lucca.</p>
      <empty-line/>
      <section>
        <title><p>Chapter I</p></title>
        <p>It was in July.</p>
      </section>
    </section>
    <section id="note1">
      <p>Footnote text.</p>
    </section>
  </body>
  <binary id="cover.jpg" content-type="image/jpeg">AAAA</binary>
</FictionBook>
"""


def _write(path: Path, payload: str, trailer: bytes = b"") -> Path:
    path.write_bytes(payload.encode("utf-8") + trailer)
    return path


def test_fb2_sections_titles_and_metadata(tmp_path: Path) -> None:
    source = _write(tmp_path / "book.fb2", _FB2)

    document = Fb2Extractor().parse(ParserContext(str(source)))
    content = document.content

    assert document.title == "War and Peace"
    assert document.author == "Lev N. Tolstoy, Co Writer"
    assert "AAAA" not in content
    assert content.index("Part One") < content.index("It was in July.")

    [part_one] = document.toc_items
    assert part_one.name == "Part One"
    assert [child.name for child in part_one.children] == ["Chapter I"]
    assert content.startswith("Chapter I", part_one.children[0].offset)

    breaks = [marker for marker in document.markers if marker.marker_type is MarkerType.SECTION_BREAK]
    assert len(breaks) == 3


def test_fb2_links_resolve_to_section_ids(tmp_path: Path) -> None:
    source = _write(tmp_path / "book.fb2", _FB2)

    document = Fb2Extractor().parse(ParserContext(str(source)))

    [link] = [marker for marker in document.markers if marker.marker_type is MarkerType.LINK]
    assert (link.text, link.reference) == ("Genoa", "#note1")
    assert document.content.startswith("Footnote text.", document.resolve(link.reference))
    assert document.content.startswith("Part One", document.id_positions["part1"])


def test_fb2_ignores_trailing_garbage_after_root(tmp_path: Path) -> None:
    source = _write(tmp_path / "tail.fb2", _FB2, trailer=b"\x00\x00garbage<<")

    document = Fb2Extractor().parse(ParserContext(str(source)))

    assert "Footnote text." in document.content


def test_fbz_container_is_unpacked(tmp_path: Path) -> None:
    source = tmp_path / "book.fbz"
    with zipfile.ZipFile(source, "w") as archive:
        archive.writestr("readme.txt", "ignore me")
        archive.writestr("book.fb2", _FB2)

    document = Fb2Extractor().parse(ParserContext(str(source)))

    assert document.title == "War and Peace"


def test_fb2_malformed_xml_is_format_invalid(tmp_path: Path) -> None:
    source = _write(tmp_path / "bad.fb2", "<FictionBook><body><p>unclosed")

    with pytest.raises(FormatInvalid):
        Fb2Extractor().parse(ParserContext(str(source)))
