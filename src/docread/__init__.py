"""Document reading: uniform, position-indexed text from heterogeneous formats."""

from .buffer import DocumentBuffer
from .config import ParserSettings
from .document import Document, DocumentStats
from .errors import EmptyInput, FormatInvalid, OpenFailure, ParseError, PasswordRequired, UnsupportedExtension
from .models import DisplayUnit, Marker, MarkerType, ParserContext, ParserFlags, TocItem
from .registry import ParserInfo, get_all_parsers, get_parser_for_extension, parse_document

__all__ = [
    "DisplayUnit",
    "Document",
    "DocumentBuffer",
    "DocumentStats",
    "EmptyInput",
    "FormatInvalid",
    "Marker",
    "MarkerType",
    "OpenFailure",
    "ParseError",
    "ParserContext",
    "ParserFlags",
    "ParserInfo",
    "ParserSettings",
    "PasswordRequired",
    "TocItem",
    "UnsupportedExtension",
    "get_all_parsers",
    "get_parser_for_extension",
    "parse_document",
]
