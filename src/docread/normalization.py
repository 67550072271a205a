"""Text normalization helpers shared by extractors."""

from __future__ import annotations

import re
from urllib.parse import unquote

# \s on str patterns already covers NBSP (U+00A0)
_WHITESPACE_RE = re.compile(r"\s+")
_SOFT_HYPHEN = "\u00ad"


def normalize_whitespace(text: str) -> str:
    """Collapse repeated whitespace and trim boundaries."""

    return _WHITESPACE_RE.sub(" ", text).strip()


def collapse_whitespace(text: str) -> str:
    """Collapse whitespace runs into one space without trimming."""

    return _WHITESPACE_RE.sub(" ", text)


def remove_soft_hyphens(text: str) -> str:
    return text.replace(_SOFT_HYPHEN, "")


def url_decode(text: str) -> str:
    """Percent-decode a reference, replacing undecodable sequences."""

    return unquote(text, errors="replace")
