"""Extension-based dispatch over the closed set of format extractors."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import threading
from typing import Iterable

from docread.document import Document
from docread.errors import FormatInvalid, OpenFailure, ParseError, UnsupportedExtension
from docread.extractors import DocumentExtractor, build_default_extractors
from docread.models import ParserContext, ParserFlags

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ParserInfo:
    """Capability record advertised to callers."""

    name: str
    extensions: tuple[str, ...]
    flags: ParserFlags


def normalize_extension(extension: str) -> str:
    return extension.strip().lstrip(".").lower()


class ParserRegistry:
    """Immutable extension map; the first registered extractor wins a collision."""

    def __init__(self, extractors: Iterable[DocumentExtractor]) -> None:
        self._extractors: tuple[DocumentExtractor, ...] = tuple(extractors)
        by_extension: dict[str, DocumentExtractor] = {}
        for extractor in self._extractors:
            for extension in extractor.extensions():
                by_extension.setdefault(normalize_extension(extension), extractor)
        self._by_extension = by_extension

    def parsers(self) -> list[ParserInfo]:
        return [
            ParserInfo(
                name=extractor.name(),
                extensions=tuple(sorted(normalize_extension(ext) for ext in extractor.extensions())),
                flags=extractor.supported_flags(),
            )
            for extractor in self._extractors
        ]

    def find(self, extension: str) -> DocumentExtractor | None:
        normalized = normalize_extension(extension)
        if not normalized:
            return None
        return self._by_extension.get(normalized)

    def parse(self, context: ParserContext, extension: str | None = None) -> Document:
        """Dispatch *context* by extension and return a document with stats.

        *extension* overrides the one taken from ``context.file_path``.
        """

        path = context.file_path
        requested = extension if extension is not None else Path(path).suffix
        if not normalize_extension(requested):
            raise UnsupportedExtension(path, "File has no extension")

        extractor = self.find(requested)
        if extractor is None:
            raise UnsupportedExtension(path, f"No parser registered for extension '.{normalize_extension(requested)}'")

        logger.debug("Dispatching %s to %s", path, extractor.name())
        try:
            document = extractor.parse(context)
        except ParseError:
            raise
        except OSError as exc:
            raise OpenFailure(path, f"Cannot read file: {exc}") from exc
        except Exception as exc:
            raise FormatInvalid(path, f"{extractor.name()} extraction failed: {exc}") from exc

        document.compute_stats()
        logger.info(
            "Parsed %s with %s: %d chars, %d markers, %d toc roots, %d skipped",
            path,
            extractor.name(),
            document.stats.char_count,
            len(document.markers),
            len(document.toc_items),
            len(document.skipped_items),
        )
        return document


_registry: ParserRegistry | None = None
_registry_lock = threading.Lock()


def global_registry() -> ParserRegistry:
    """Process-wide registry, built once on first use and read-only afterwards."""

    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = ParserRegistry(build_default_extractors())
    return _registry


def get_all_parsers() -> list[ParserInfo]:
    return global_registry().parsers()


def get_parser_for_extension(extension: str) -> str | None:
    """Name of the extractor handling *extension*, or ``None``."""

    extractor = global_registry().find(extension)
    return extractor.name() if extractor is not None else None


def parse_document(context: ParserContext, extension: str | None = None) -> Document:
    return global_registry().parse(context, extension)
