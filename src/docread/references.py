"""Cross-reference resolution from native references to buffer offsets.

Extractors speak three reference dialects: plain paths (``text/ch1.html``),
``file#fragment`` and bare ``#fragment``. Paths are reconciled into one
canonical form by :func:`normalize_path` (lowercase, forward slashes, one
leading slash) so that multi-file formats can key anchors as
``"{normalized-path}#{fragment}"``. Single-document formats key anchors by the
bare fragment.

An unresolved reference yields ``None``; it is never an error.
"""

from __future__ import annotations

import posixpath
from typing import Mapping

from docread.normalization import url_decode

_EXTERNAL_SCHEMES = ("http:", "https:", "mailto:")
_EPUB_SCHEME = "epub://"


def is_external(reference: str) -> bool:
    return reference.strip().lower().startswith(_EXTERNAL_SCHEMES)


def split_reference(reference: str) -> tuple[str, str | None]:
    """Split on the first ``#`` into a path part and an optional fragment."""

    path, sep, fragment = reference.partition("#")
    return path, (fragment if sep else None)


def normalize_path(path: str) -> str:
    if not path:
        return ""
    result = path.replace("\\", "/").lower()
    return "/" + result.lstrip("/")


def anchor_key(path: str, fragment: str) -> str:
    """Canonical ``id_positions`` key for an anchor inside a multi-file source."""

    return f"{normalize_path(path)}#{fragment}"


def resolve_relative(current_path: str, href: str) -> str:
    """Resolve *href* against the file that contains it.

    External references come back verbatim. Everything else is returned in
    canonical ``/path#fragment`` form; a bare ``#fragment`` is anchored to
    *current_path*.
    """

    if is_external(href):
        return href
    target = href[len(_EPUB_SCHEME):] if href.startswith(_EPUB_SCHEME) else href
    path_part, fragment = split_reference(target)
    path_part = url_decode(path_part.replace("\\", "/"))

    if not path_part:
        resolved = current_path.replace("\\", "/")
    elif path_part.startswith("/"):
        resolved = path_part
    else:
        base_dir = posixpath.dirname(current_path.replace("\\", "/"))
        resolved = posixpath.join(base_dir, path_part)

    resolved = posixpath.normpath("/" + resolved.lstrip("/"))
    # normpath keeps a leading "//" and cannot climb above the root
    resolved = normalize_path(resolved)
    if fragment:
        return f"{resolved}#{fragment}"
    return resolved


class ReferenceResolver:
    """Resolve references against anchor and section-start tables.

    Both tables are re-keyed into canonical form on construction, so callers may
    pass either raw (``ch1.html#s2``) or normalized (``/ch1.html#s2``) keys.
    Keys without ``#`` in *id_positions* are bare anchors of a single-document
    source. Resolution has no side effects.
    """

    def __init__(
        self,
        id_positions: Mapping[str, int],
        section_positions: Mapping[str, int] | None = None,
    ) -> None:
        self._anchors: dict[str, int] = {}
        self._bare: dict[str, int] = {}
        for key, offset in id_positions.items():
            path, fragment = split_reference(key)
            if fragment is None:
                self._bare[key] = offset
            elif not path:
                self._bare[fragment] = offset
            else:
                self._anchors[anchor_key(path, fragment)] = offset
        self._sections: dict[str, int] = {
            normalize_path(path): offset for path, offset in (section_positions or {}).items()
        }

    def resolve(self, reference: str, *, base: str | None = None) -> int | None:
        """Return the absolute offset for *reference*, or ``None``.

        *base* is the containing file for bare ``#fragment`` references in
        multi-file sources.
        """

        if not reference or is_external(reference):
            return None

        path_part, fragment = split_reference(reference)
        if not path_part and base:
            path_part = base
        normalized = normalize_path(path_part)

        if fragment:
            if normalized:
                offset = self._anchors.get(f"{normalized}#{fragment}")
                if offset is not None:
                    return offset
            else:
                offset = self._bare.get(fragment)
                if offset is not None:
                    return offset

        if normalized:
            return self._sections.get(normalized)
        return None
