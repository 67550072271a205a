from __future__ import annotations

from pathlib import Path
import zipfile

from lxml import etree
import pytest

from docread.errors import FormatInvalid
from docread.extractors import DocxExtractor
from docread.extractors.docx_extractor import paragraph_heading_level, parse_hyperlink_instruction
from docread.models import MarkerType, ParserContext

_NS = (
    'xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main" '
    'xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships"'
)

_DOCUMENT = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<w:document {_NS}>
  <w:body>
    <w:p>
      <w:pPr><w:pStyle w:val="Heading1"/></w:pPr>
      <w:r><w:t>Introduction</w:t></w:r>
    </w:p>
    <w:p>
      <w:r><w:t xml:space="preserve">Visit </w:t></w:r>
      <w:hyperlink r:id="rId5"><w:r><w:t>our site</w:t></w:r></w:hyperlink>
      <w:r><w:t xml:space="preserve"> or jump to </w:t></w:r>
      <w:hyperlink w:anchor="details"><w:r><w:t>details</w:t></w:r></w:hyperlink>
    </w:p>
    <w:p>
      <w:pPr><w:outlineLvl w:val="1"/></w:pPr>
      <w:bookmarkStart w:id="0" w:name="_GoBack"/>
      <w:bookmarkStart w:id="1" w:name="details"/>
      <w:r><w:t>Details</w:t></w:r>
      <w:bookmarkEnd w:id="1"/>
    </w:p>
    <w:p>
      <w:r><w:t xml:space="preserve">See </w:t></w:r>
      <w:r><w:fldChar w:fldCharType="begin"/></w:r>
      <w:r><w:instrText xml:space="preserve"> HYPERLINK \\l "details" </w:instrText></w:r>
      <w:r><w:fldChar w:fldCharType="separate"/></w:r>
      <w:r><w:t>above</w:t></w:r>
      <w:r><w:fldChar w:fldCharType="end"/></w:r>
    </w:p>
  </w:body>
</w:document>
"""

_RELS = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
  <Relationship Id="rId5"
    Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/hyperlink"
    Target="https://example.com/" TargetMode="External"/>
</Relationships>
"""

_CORE = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<cp:coreProperties
  xmlns:cp="http://schemas.openxmlformats.org/package/2006/metadata/core-properties"
  xmlns:dc="http://purl.org/dc/elements/1.1/">
  <dc:title>Quarterly Report</dc:title>
  <dc:creator>Finance Team</dc:creator>
</cp:coreProperties>
"""


def _build_docx(path: Path, *, with_core: bool = True) -> Path:
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("word/document.xml", _DOCUMENT)
        archive.writestr("word/_rels/document.xml.rels", _RELS)
        if with_core:
            archive.writestr("docProps/core.xml", _CORE)
    return path


def test_docx_paragraphs_headings_and_metadata(tmp_path: Path) -> None:
    source = _build_docx(tmp_path / "report.docx")

    document = DocxExtractor().parse(ParserContext(str(source)))

    assert document.title == "Quarterly Report"
    assert document.author == "Finance Team"
    assert document.content == "Introduction\nVisit our site or jump to details\nDetails\nSee above\n"

    [intro] = document.toc_items
    assert (intro.name, intro.offset) == ("Introduction", 0)
    assert [child.name for child in intro.children] == ["Details"]


def test_docx_links_from_relationships_anchors_and_fields(tmp_path: Path) -> None:
    source = _build_docx(tmp_path / "report.docx")

    document = DocxExtractor().parse(ParserContext(str(source)))
    content = document.content

    links = [marker for marker in document.markers if marker.marker_type is MarkerType.LINK]
    assert [(link.text, link.reference) for link in links] == [
        ("our site", "https://example.com/"),
        ("details", "#details"),
        ("above", "#details"),
    ]
    for link in links:
        assert content.startswith(link.text, link.position)

    assert "_GoBack" not in document.id_positions
    assert content.startswith("Details", document.resolve("#details"))


def test_docx_without_core_properties_uses_file_stem(tmp_path: Path) -> None:
    source = _build_docx(tmp_path / "draft.docx", with_core=False)

    assert DocxExtractor().parse(ParserContext(str(source))).title == "draft"


def test_docx_missing_main_part_is_format_invalid(tmp_path: Path) -> None:
    source = tmp_path / "hollow.docx"
    with zipfile.ZipFile(source, "w") as archive:
        archive.writestr("[Content_Types].xml", "<Types/>")

    with pytest.raises(FormatInvalid, match="word/document.xml"):
        DocxExtractor().parse(ParserContext(str(source)))


@pytest.mark.parametrize(
    ("instruction", "expected"),
    [
        (' HYPERLINK "https://example.com" ', "https://example.com"),
        (' HYPERLINK \\l "toc1" ', "#toc1"),
        (" HYPERLINK ", ""),
    ],
)
def test_parse_hyperlink_instruction(instruction: str, expected: str) -> None:
    assert parse_hyperlink_instruction(instruction) == expected


def test_paragraph_heading_level_from_style_or_outline() -> None:
    ppr = etree.fromstring(
        '<w:pPr xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
        '<w:pStyle w:val="Normal"/><w:outlineLvl w:val="2"/></w:pPr>'
    )

    assert paragraph_heading_level(ppr) == 3
