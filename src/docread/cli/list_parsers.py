"""CLI entrypoint listing the registered parsers and their capabilities."""

from __future__ import annotations

import argparse
import json

from docread.models import ParserFlags
from docread.registry import get_all_parsers


def _flag_names(flags: ParserFlags) -> list[str]:
    return [flag.name for flag in ParserFlags if flag is not ParserFlags.NONE and flag in flags]


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="List supported document formats")
    parser.parse_args(argv)

    payload = {
        "parsers": [
            {
                "name": info.name,
                "extensions": list(info.extensions),
                "flags": _flag_names(info.flags),
            }
            for info in get_all_parsers()
        ]
    }
    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
