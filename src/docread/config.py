"""Runtime configuration for parsing and the command-line tools."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from typing import Mapping

from docread.models import DisplayUnit


DEFAULT_DISPLAY_UNIT = DisplayUnit.CODEPOINT
DEFAULT_LOG_LEVEL = "WARNING"

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _parse_display_unit(raw_value: str) -> DisplayUnit:
    try:
        return DisplayUnit(raw_value.lower())
    except ValueError:
        allowed = ", ".join(unit.value for unit in DisplayUnit)
        raise ValueError(f"DOCREAD_DISPLAY_UNIT must be one of: {allowed}") from None


@dataclass(frozen=True, slots=True)
class ParserSettings:
    """Validated settings applied to every parse call made by the tools."""

    display_unit: DisplayUnit = DEFAULT_DISPLAY_UNIT
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ParserSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        unit_raw = source.get("DOCREAD_DISPLAY_UNIT", DEFAULT_DISPLAY_UNIT.value).strip()
        level_raw = source.get("DOCREAD_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper()

        if not unit_raw:
            raise ValueError("DOCREAD_DISPLAY_UNIT cannot be empty")
        if not level_raw:
            raise ValueError("DOCREAD_LOG_LEVEL cannot be empty")
        if level_raw not in _LOG_LEVELS:
            raise ValueError(f"DOCREAD_LOG_LEVEL must be a logging level name, got {level_raw!r}")

        return cls(display_unit=_parse_display_unit(unit_raw), log_level=level_raw)
