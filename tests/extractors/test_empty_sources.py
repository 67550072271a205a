from __future__ import annotations

from pathlib import Path
import zipfile

import pytest

from docread.errors import EmptyInput
from docread.models import ParserContext
from docread.registry import parse_document


def _write_text(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def _blank_html(tmp_path: Path) -> Path:
    return _write_text(tmp_path / "blank.html", "<html><head><title>Nothing</title></head><body>  </body></html>")


def _blank_markdown(tmp_path: Path) -> Path:
    return _write_text(tmp_path / "blank.md", "   \n\n\t\n")


def _blank_txt(tmp_path: Path) -> Path:
    return _write_text(tmp_path / "blank.txt", "   \r\n\r\n")


def _blank_fb2(tmp_path: Path) -> Path:
    return _write_text(
        tmp_path / "blank.fb2",
        '<?xml version="1.0" encoding="utf-8"?>'
        '<FictionBook xmlns="http://www.gribuser.ru/xml/fictionbook/2.0">'
        "<description><title-info><book-title>Hollow</book-title></title-info></description>"
        "<body/></FictionBook>",
    )


def _blank_docx(tmp_path: Path) -> Path:
    path = tmp_path / "blank.docx"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr(
            "word/document.xml",
            '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
            "<w:body><w:p/></w:body></w:document>",
        )
    return path


def _blank_odt(tmp_path: Path) -> Path:
    path = tmp_path / "blank.odt"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr(
            "content.xml",
            '<office:document-content xmlns:office="urn:oasis:names:tc:opendocument:xmlns:office:1.0"'
            ' xmlns:text="urn:oasis:names:tc:opendocument:xmlns:text:1.0">'
            "<office:body><office:text><text:p/></office:text></office:body></office:document-content>",
        )
    return path


@pytest.mark.parametrize(
    "build",
    [_blank_html, _blank_markdown, _blank_txt, _blank_fb2, _blank_docx, _blank_odt],
    ids=["html", "markdown", "txt", "fb2", "docx", "odt"],
)
def test_sources_without_readable_text_are_empty_input(tmp_path: Path, build) -> None:
    source = build(tmp_path)

    with pytest.raises(EmptyInput, match="no readable content"):
        parse_document(ParserContext(str(source)))
