from __future__ import annotations

import pytest

from docread.references import (
    ReferenceResolver,
    anchor_key,
    is_external,
    normalize_path,
    resolve_relative,
    split_reference,
)


def test_fragment_then_file_start_then_unresolved() -> None:
    resolver = ReferenceResolver({"ch1.html#s2": 120}, {"ch1.html": 100})

    assert resolver.resolve("ch1.html#s2") == 120
    assert resolver.resolve("ch1.html#missing") == 100
    assert resolver.resolve("missing.html#x") is None


def test_resolution_is_idempotent() -> None:
    resolver = ReferenceResolver({"/Text/Ch1.xhtml#s2": 42}, {"/text/ch1.xhtml": 40})

    first = resolver.resolve("text\\CH1.xhtml#s2")
    second = resolver.resolve("text\\CH1.xhtml#s2")

    assert first == second == 42


def test_bare_fragments_for_single_document_sources() -> None:
    resolver = ReferenceResolver({"intro": 5, "#appendix": 90})

    assert resolver.resolve("#intro") == 5
    assert resolver.resolve("#appendix") == 90
    assert resolver.resolve("#nowhere") is None


def test_bare_fragment_resolves_against_base_file() -> None:
    resolver = ReferenceResolver({anchor_key("ch2.xhtml", "n1"): 300}, {"ch2.xhtml": 250})

    assert resolver.resolve("#n1", base="ch2.xhtml") == 300
    assert resolver.resolve("#gone", base="ch2.xhtml") == 250


@pytest.mark.parametrize("reference", ["", "http://example.com/a#b", "HTTPS://x", "mailto:me@example.com"])
def test_external_and_empty_references_are_never_resolved(reference: str) -> None:
    resolver = ReferenceResolver({"b": 1}, {"http://example.com/a": 0})

    assert resolver.resolve(reference) is None


def test_normalize_path_reconciles_conventions() -> None:
    assert normalize_path("Text\\Chapter1.HTML") == "/text/chapter1.html"
    assert normalize_path("///a/b") == "/a/b"
    assert normalize_path("") == ""


def test_split_reference_keeps_empty_fragment_distinct_from_none() -> None:
    assert split_reference("a.html") == ("a.html", None)
    assert split_reference("a.html#") == ("a.html", "")
    assert split_reference("#x#y") == ("", "x#y")


def test_resolve_relative_against_containing_file() -> None:
    assert resolve_relative("OEBPS/text/ch1.xhtml", "ch2.xhtml#p3") == "/oebps/text/ch2.xhtml#p3"
    assert resolve_relative("OEBPS/text/ch1.xhtml", "../images/map.html") == "/oebps/images/map.html"
    assert resolve_relative("OEBPS/text/ch1.xhtml", "#top") == "/oebps/text/ch1.xhtml#top"
    assert resolve_relative("ch1.xhtml", "/root.html") == "/root.html"
    assert resolve_relative("ch1.xhtml", "epub://ch9.xhtml") == "/ch9.xhtml"
    assert resolve_relative("ch1.xhtml", "https://Example.com/X") == "https://Example.com/X"
    assert resolve_relative("text/ch1.xhtml", "Chapter%202.xhtml#a%20b") == "/text/chapter 2.xhtml#a%20b"


def test_is_external_ignores_case_and_whitespace() -> None:
    assert is_external(" MailTo:someone")
    assert not is_external("chapter.html")
