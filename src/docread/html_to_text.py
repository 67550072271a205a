"""HTML/XHTML flattening with heading, link, list and anchor side tables.

All recorded offsets are relative to the start of the converted text and are
measured in the display unit of the converter, so callers can shift them by the
position at which they append the text to a document buffer.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from bs4 import BeautifulSoup
from bs4.element import CData, NavigableString, PreformattedString, Tag

from docread.buffer import DocumentBuffer
from docread.models import DisplayUnit
from docread.normalization import normalize_whitespace
from docread.text_flow import TextFlow
from docread.toc import HeadingInfo

_SKIP_TAGS = frozenset({"head", "script", "style", "noscript", "template", "title", "meta", "link"})
_BLOCK_TAGS = frozenset(
    {
        "html", "body", "p", "div", "section", "article", "header", "footer", "aside", "nav",
        "main", "blockquote", "table", "thead", "tbody", "tfoot", "tr", "caption", "dl", "dt",
        "dd", "figure", "figcaption", "address", "fieldset", "form", "hr", "center",
    }
)
_HEADING_TAGS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}
_LIST_TAGS = frozenset({"ul", "ol"})
_CELL_TAGS = frozenset({"td", "th"})
_BREAKING_TAGS = _BLOCK_TAGS | _LIST_TAGS | set(_HEADING_TAGS) | {"li", "pre"}


@dataclass(slots=True)
class LinkInfo:
    text: str
    reference: str
    offset: int


@dataclass(slots=True)
class ListInfo:
    offset: int
    item_count: int


@dataclass(slots=True)
class ListItemInfo:
    offset: int
    level: int
    text: str


@dataclass(slots=True)
class ConvertedText:
    text: str
    headings: list[HeadingInfo] = field(default_factory=list)
    links: list[LinkInfo] = field(default_factory=list)
    lists: list[ListInfo] = field(default_factory=list)
    list_items: list[ListItemInfo] = field(default_factory=list)
    id_positions: dict[str, int] = field(default_factory=dict)
    title: str | None = None
    author: str | None = None


def _local_name(tag: Tag) -> str:
    name = (tag.name or "").lower()
    return name.rsplit(":", 1)[-1]


def _is_text(node: object) -> bool:
    if not isinstance(node, NavigableString):
        return False
    return not isinstance(node, PreformattedString) or isinstance(node, CData)


def _own_text(tag: Tag) -> str:
    """Text of *tag* excluding nested lists."""

    parts: list[str] = []
    for child in tag.children:
        if isinstance(child, Tag):
            if _local_name(child) in _LIST_TAGS:
                continue
            parts.append(child.get_text(" "))
        elif _is_text(child):
            parts.append(str(child))
    return normalize_whitespace(" ".join(parts))


def _document_author(soup: BeautifulSoup) -> str | None:
    for meta in soup.find_all("meta"):
        if str(meta.get("name", "")).lower() == "author":
            author = normalize_whitespace(str(meta.get("content", "")))
            if author:
                return author
    return None


class _Walker:
    def __init__(self, unit: DisplayUnit) -> None:
        self.buffer = DocumentBuffer(unit)
        self.flow = TextFlow(self.buffer)
        self.headings: list[HeadingInfo] = []
        self.links: list[LinkInfo] = []
        self.lists: list[ListInfo] = []
        self.list_items: list[ListItemInfo] = []
        self.id_positions: dict[str, int] = {}
        self._pre_depth = 0
        self._list_depth = 0

    def walk(self, node: Tag) -> None:
        for child in node.children:
            if isinstance(child, Tag):
                self._element(child)
            elif _is_text(child):
                self._text(str(child))

    def _element(self, tag: Tag) -> None:
        name = _local_name(tag)
        if name in _SKIP_TAGS:
            return

        if name in _BREAKING_TAGS:
            self.flow.block_break()
        self._record_anchor(tag, name)

        if name == "br":
            self.flow.line_break()
        elif name in _HEADING_TAGS:
            self._heading(tag, _HEADING_TAGS[name])
        elif name in _LIST_TAGS:
            self._list(tag)
        elif name == "li":
            self._list_item(tag)
        elif name == "a" and tag.get("href"):
            self._link(tag)
        elif name == "pre":
            self.flow.block_break()
            self._pre_depth += 1
            self.walk(tag)
            self._pre_depth -= 1
            self.flow.block_break()
        elif name in _CELL_TAGS:
            self.flow.space()
            self.walk(tag)
            self.flow.space()
        elif name in _BLOCK_TAGS:
            self.flow.block_break()
            self.walk(tag)
            self.flow.block_break()
        else:
            self.walk(tag)

    def _record_anchor(self, tag: Tag, name: str) -> None:
        anchor = tag.get("id")
        if not anchor and name == "a":
            anchor = tag.get("name")
        if anchor:
            self.id_positions[str(anchor)] = self.buffer.current_position()

    def _text(self, raw: str) -> None:
        if self._pre_depth:
            self.flow.preformatted(raw)
        else:
            self.flow.text(raw)

    def _heading(self, tag: Tag, level: int) -> None:
        self.flow.block_break()
        start = self.buffer.current_position()
        self.walk(tag)
        self.flow.block_break()
        text = normalize_whitespace(tag.get_text(" "))
        if text:
            anchor = str(tag.get("id") or "")
            self.headings.append(HeadingInfo(text=text, level=level, offset=start, anchor=anchor))

    def _link(self, tag: Tag) -> None:
        text = normalize_whitespace(tag.get_text(" "))
        if not text:
            self.walk(tag)
            return
        self.flow.flush_space()
        start = self.buffer.current_position()
        self.walk(tag)
        self.links.append(LinkInfo(text=text, reference=str(tag.get("href")), offset=start))

    def _list(self, tag: Tag) -> None:
        self.flow.block_break()
        items = [child for child in tag.children if isinstance(child, Tag) and _local_name(child) == "li"]
        self.lists.append(ListInfo(offset=self.buffer.current_position(), item_count=len(items)))
        self._list_depth += 1
        self.walk(tag)
        self._list_depth -= 1
        self.flow.block_break()

    def _list_item(self, tag: Tag) -> None:
        self.flow.block_break()
        self.list_items.append(
            ListItemInfo(
                offset=self.buffer.current_position(),
                level=max(self._list_depth, 1),
                text=_own_text(tag),
            )
        )
        self.walk(tag)
        self.flow.block_break()


class HtmlToText:
    """Convert markup into :class:`ConvertedText` measured in *unit*."""

    def __init__(self, unit: DisplayUnit = DisplayUnit.CODEPOINT) -> None:
        self._unit = unit

    def convert(self, markup: str | bytes, *, features: str = "lxml") -> ConvertedText:
        soup = BeautifulSoup(markup, features)
        walker = _Walker(self._unit)
        walker.walk(soup.body or soup)

        title = None
        if soup.title is not None:
            title = normalize_whitespace(soup.title.get_text(" ")) or None

        return ConvertedText(
            text=walker.buffer.content,
            headings=walker.headings,
            links=walker.links,
            lists=walker.lists,
            list_items=walker.list_items,
            id_positions=walker.id_positions,
            title=title,
            author=_document_author(soup),
        )
