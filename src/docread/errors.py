"""Error taxonomy surfaced by ``parse_document``."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class ParseError(Exception):
    """Base error for dispatch and extraction failures."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (path={self.path})"


class OpenFailure(ParseError):
    """File missing, unreadable, or a container that cannot be opened."""


class FormatInvalid(ParseError):
    """Malformed markup, XML or archive structure."""


class PasswordRequired(ParseError):
    """Encrypted content with a missing or incorrect password."""


class UnsupportedExtension(ParseError):
    """No extension on the path, or no extractor registered for it."""


class EmptyInput(ParseError):
    """Zero-byte or otherwise vacuous source."""
