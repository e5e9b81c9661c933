# /backend/claims_ai/main.py

"""
Command-line entry point.

    python -m claims_ai.main claim.pdf [--report] [--log-level DEBUG]

Prints the canonical claim (or the full extraction report) as JSON on stdout.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from claims_ai.config import Settings, configure_logging
from claims_ai.services.document_ai_service import build_document_ai_service
from claims_ai.utils.file_handler import get_file_size

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="claims-ai",
        description="Extract a canonical medical claim record from a document",
    )
    parser.add_argument("document", help="Path to the claim document (PDF)")
    parser.add_argument(
        "--document-path",
        help="Storage reference to record on the claim (defaults to the input path)",
    )
    parser.add_argument(
        "--report", action="store_true",
        help="Include confidence score and defaulted fields in the output",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: LOG_LEVEL env or INFO)")
    return parser


async def run(args: argparse.Namespace, settings: Settings) -> str:
    service = build_document_ai_service(settings)
    if args.report:
        report = await service.process_document_with_report(args.document, args.document_path)
        return report.model_dump_json(indent=2)
    claim = await service.process_document(args.document, args.document_path)
    return claim.model_dump_json(indent=2)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings()
    configure_logging(args.log_level or settings.LOG_LEVEL)

    try:
        logger.info(f"{settings.APP_NAME} v{settings.VERSION}: {args.document} ({get_file_size(args.document)} bytes)")
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(asyncio.run(run(args, settings)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
