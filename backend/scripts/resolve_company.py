#!/usr/bin/env python3
"""Work-order company resolution runner.

Resolves the issuing company of one or more work-order PDFs from their
file names (and optionally extracted header text) and prints the matched
company plus the rendered extraction prompt.

Usage:
    # Resolve by file name only
    python -m scripts.resolve_company "野原G住環境_発注書_0612.pdf"

    # Add header text extracted by OCR
    python -m scripts.resolve_company order.pdf --text-file header.txt

    # Force a company selected by the user
    python -m scripts.resolve_company order.pdf --hint NOHARA_G_MISAWA

    # Machine-readable output
    python -m scripts.resolve_company a.pdf b.pdf --json

    # Show the company dropdown list
    python -m scripts.resolve_company --list-companies
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Add backend to path for imports
_backend = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_backend))

# Load .env before importing app modules
from dotenv import load_dotenv
load_dotenv(_backend / ".env")

import structlog

structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ]
)

from app.core.config import settings
from app.modules.intake.dispatcher import build_dispatcher
from app.modules.intake.schemas import DocumentDescriptor

logger = structlog.get_logger()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Work-order company resolution")
    parser.add_argument("file_names", nargs="*",
                        help="Work-order PDF file names to resolve")
    parser.add_argument("--text-file", type=Path, default=None,
                        help="Text file with header text extracted from the PDF")
    parser.add_argument("--hint", type=str, default=None,
                        help="Company id selected by the user")
    parser.add_argument("--list-companies", action="store_true",
                        help="Print the selectable companies and exit")
    parser.add_argument("--json", action="store_true",
                        help="Print results as JSON")
    parser.add_argument("--no-prompt", action="store_true",
                        help="Omit the rendered prompt from text output")

    args = parser.parse_args(argv)

    dispatcher = build_dispatcher(settings)

    if args.list_companies:
        for record in dispatcher.registry.list_selectable():
            indent = "  " if record.is_sub_company else ""
            print(f"{indent}{record.id:<32} {record.display_name}  [{record.status}]")
        return

    if not args.file_names:
        parser.error("at least one file name is required")

    text_sample = None
    if args.text_file:
        text_sample = args.text_file.read_text(encoding="utf-8")

    results = []
    for file_name in args.file_names:
        descriptor = DocumentDescriptor(
            file_name=file_name,
            raw_text_sample=text_sample,
            explicit_company_hint=args.hint,
        )
        results.append(dispatcher.resolve_and_render(descriptor))

    if args.json:
        print(json.dumps([r.model_dump() for r in results], ensure_ascii=False, indent=2))
        return

    for file_name, result in zip(args.file_names, results):
        print(f"\n{'=' * 60}")
        print(f"File:       {file_name}")
        print(f"Company:    {result.matched_company_id} ({result.company_name})")
        print(f"Method:     {result.detection_method}  confidence={result.confidence:.2f}")
        print(f"Fallback:   {result.is_fallback}")
        print(f"Prompt:     {result.prompt_identifier}")
        if result.ambiguous:
            print(f"Ambiguous:  {', '.join(result.candidates)}")
        if not args.no_prompt:
            print(f"{'-' * 60}\n{result.prompt_text}")


if __name__ == "__main__":
    main()
