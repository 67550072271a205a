from __future__ import annotations

import json
from pathlib import Path

import pytest

from docread.cli.list_parsers import main as list_parsers_main
from docread.cli.parse_document import main as parse_document_main


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    monkeypatch.delenv("DOCREAD_DISPLAY_UNIT", raising=False)
    monkeypatch.delenv("DOCREAD_LOG_LEVEL", raising=False)


def test_parse_document_cli_prints_document_json(tmp_path: Path, capsys) -> None:
    source = tmp_path / "page.html"
    source.write_text("<h1 id='a'>Heading</h1><p>Body 🙂 text</p>", encoding="utf-8")

    exit_code = parse_document_main(["--path", str(source)])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    document = payload["document"]
    assert payload["path"] == str(source)
    assert document["title"] == "page"
    assert document["display_unit"] == "codepoint"
    assert document["content"] == "Heading\nBody 🙂 text\n"
    assert document["markers"][0] == {"type": "HEADING1", "position": 0, "text": "Heading", "reference": "", "level": 1}
    assert document["toc"] == [
        {"name": "Heading", "reference": "", "offset": 0, "depth": 0, "parent_index": None}
    ]
    assert document["id_positions"] == {"a": 0}
    assert document["stats"]["word_count"] == 4


def test_parse_document_cli_honours_display_unit_and_no_content(tmp_path: Path, monkeypatch, capsys) -> None:
    source = tmp_path / "note.txt"
    source.write_text("🙂 smile", encoding="utf-8")
    monkeypatch.setenv("DOCREAD_DISPLAY_UNIT", "UTF16")

    exit_code = parse_document_main(["--path", str(source), "--no-content"])
    document = json.loads(capsys.readouterr().out)["document"]

    assert exit_code == 0
    assert "content" not in document
    assert document["display_unit"] == "utf16"
    assert document["stats"]["char_count"] == 8


def test_parse_document_cli_reports_parse_errors(tmp_path: Path, capsys) -> None:
    exit_code = parse_document_main(["--path", str(tmp_path / "missing.txt")])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 1
    assert payload["kind"] == "OpenFailure"
    assert "missing.txt" in payload["error"]


def test_parse_document_cli_rejects_unknown_extension(tmp_path: Path, capsys) -> None:
    source = tmp_path / "data.bin"
    source.write_bytes(b"\x00\x01")

    assert parse_document_main(["--path", str(source)]) == 1
    assert json.loads(capsys.readouterr().out)["kind"] == "UnsupportedExtension"


def test_parse_document_cli_rejects_invalid_settings(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("DOCREAD_DISPLAY_UNIT", "bytes")

    exit_code = parse_document_main(["--path", str(tmp_path / "any.txt")])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 2
    assert "DOCREAD_DISPLAY_UNIT" in payload["error"]


def test_list_parsers_cli_prints_capabilities(capsys) -> None:
    exit_code = list_parsers_main([])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    by_name = {entry["name"]: entry for entry in payload["parsers"]}
    assert len(by_name) == 9
    assert by_name["PDF Documents"] == {
        "name": "PDF Documents",
        "extensions": ["pdf"],
        "flags": ["SUPPORTS_TOC", "SUPPORTS_PAGES"],
    }
    assert by_name["Text Files"]["flags"] == []
