"""CLI entrypoint that parses one document and prints it as JSON."""

from __future__ import annotations

import argparse
import json
import logging

from dotenv import load_dotenv

load_dotenv()

from docread.config import ParserSettings
from docread.errors import ParseError
from docread.models import ParserContext
from docread.registry import parse_document
from docread.serialization import document_to_dict


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Parse a document into flattened text, markers and outline")
    parser.add_argument("--path", required=True, help="Document to parse")
    parser.add_argument("--password", default=None, help="Password for encrypted documents")
    parser.add_argument("--extension", default=None, help="Override the extension used for dispatch")
    parser.add_argument("--no-content", action="store_true", help="Omit the flattened text from the output")
    args = parser.parse_args(argv)

    try:
        settings = ParserSettings.from_env()
    except ValueError as exc:
        print(json.dumps({"error": str(exc)}, ensure_ascii=True, indent=2))
        return 2

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=settings.log_level_value,
    )

    context = ParserContext.from_settings(args.path, settings, password=args.password)
    try:
        document = parse_document(context, args.extension)
    except ParseError as exc:
        payload = {"path": args.path, "error": str(exc), "kind": type(exc).__name__}
        print(json.dumps(payload, ensure_ascii=True, indent=2))
        return 1

    payload = {"path": args.path, "document": document_to_dict(document, include_content=not args.no_content)}
    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
