"""Byte-to-text decoding with BOM handling and charset sniffing."""

from __future__ import annotations

import codecs

from charset_normalizer import from_bytes

# Longest BOMs first: the UTF-32 LE BOM starts with the UTF-16 LE one
_BOMS: tuple[tuple[bytes, str], ...] = (
    (codecs.BOM_UTF32_LE, "utf-32-le"),
    (codecs.BOM_UTF32_BE, "utf-32-be"),
    (codecs.BOM_UTF8, "utf-8"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
)


def detect_encoding(raw: bytes) -> str:
    """Pick a codec for *raw*; never fails."""

    for bom, name in _BOMS:
        if raw.startswith(bom):
            return name

    try:
        raw.decode("utf-8")
        return "utf-8"
    except UnicodeDecodeError:
        pass

    best = from_bytes(raw).best()
    if best and best.encoding:
        name = best.encoding.lower()
        if name in {"windows-1251", "cp1251"}:
            return "cp1251"
        return best.encoding
    return "cp1252"


def decode_bytes(raw: bytes) -> str:
    """Decode *raw* to text, stripping any byte-order mark."""

    encoding = detect_encoding(raw)
    for bom, name in _BOMS:
        if name == encoding and raw.startswith(bom):
            raw = raw[len(bom):]
            break
    return raw.decode(encoding, errors="replace")
