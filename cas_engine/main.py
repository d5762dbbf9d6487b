"""
Command line interface for the CAS extraction engine.

Reads a statement PDF, runs the parser and writes the canonical JSON to
stdout or a file. Failures are reported with guidance and a distinct exit
code per failure kind.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from cas_engine.config import EngineConfig
from cas_engine.exceptions import ErrorKind
from cas_engine.models import ParsedStatement
from cas_engine.orchestrator import ParseOutcome, parse_cas_pdf

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

EXIT_OK = 0
EXIT_FILE_ERROR = 1

EXIT_CODES = {
    ErrorKind.UNREADABLE_DOCUMENT: 2,
    ErrorKind.PASSWORD_REQUIRED: 3,
    ErrorKind.INCORRECT_PASSWORD: 4,
    ErrorKind.UNSUPPORTED_FORMAT: 5,
    ErrorKind.EXTRACTION_INCOMPLETE: 6,
    ErrorKind.INTERNAL_EXTRACTION_ERROR: 7,
    ErrorKind.CANCELLED: 8,
}

GUIDANCE = {
    ErrorKind.UNREADABLE_DOCUMENT: "The file is not a readable PDF with a text layer.",
    ErrorKind.PASSWORD_REQUIRED: "The PDF is password protected. Pass it with --password.",
    ErrorKind.INCORRECT_PASSWORD: "The password is wrong. CAS passwords are usually the PAN in capitals.",
    ErrorKind.UNSUPPORTED_FORMAT: "Only CDSL, NSDL, CAMS and KFintech consolidated account statements are supported.",
    ErrorKind.EXTRACTION_INCOMPLETE: "The statement is missing investor details; it may be truncated.",
    ErrorKind.INTERNAL_EXTRACTION_ERROR: "The statement could not be processed. Re-run with -v for details.",
    ErrorKind.CANCELLED: "The parse was cancelled.",
}


def export_to_json(statement: ParsedStatement, output_path: Optional[str] = None) -> str:
    """
    Export a parsed statement to JSON.

    Args:
        statement: Parsed statement.
        output_path: Optional path to write JSON file.

    Returns:
        JSON string representation.
    """
    json_data = statement.to_dict()
    json_str = json.dumps(json_data, indent=2, ensure_ascii=False)

    if output_path:
        Path(output_path).write_text(json_str, encoding="utf-8")
        logger.info(f"Exported JSON to: {output_path}")

    return json_str


def format_summary(statement: ParsedStatement) -> str:
    """Render the statement summary as a short text report."""
    summary = statement.summary
    lines = [
        f"Format: {statement.meta.cas_type.value}",
        f"Accounts: {len(statement.accounts)}",
        f"Holdings: {summary.holdings_count} (value {summary.holdings_value:,.2f})",
        f"Mutual fund folios: {summary.funds_count} (value {summary.mutual_funds_value:,.2f})",
        f"Total value: {summary.total_value:,.2f}",
    ]
    for category, value in summary.categories:
        lines.append(f"  {category}: {value:,.2f}")
    if statement.meta.warnings:
        lines.append(f"Warnings: {len(statement.meta.warnings)}")
        lines.extend(f"  - {warning}" for warning in statement.meta.warnings)
    return "\n".join(lines)


def report_failure(outcome: ParseOutcome) -> int:
    """Print a failed outcome to stderr and return its exit code."""
    error = outcome.error
    print(f"Error [{error.kind.value}]: {error.message}", file=sys.stderr)
    print(GUIDANCE.get(error.kind, ""), file=sys.stderr)
    print(f"Tracking id: {error.tracking_id}", file=sys.stderr)
    return EXIT_CODES.get(error.kind, EXIT_FILE_ERROR)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cas-engine",
        description="Extract holdings and mutual funds from Consolidated Account Statement (CAS) PDFs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s statement.pdf
  %(prog)s statement.pdf -o output.json
  %(prog)s statement.pdf --password ABCDE1234F -v
  %(prog)s statement.pdf --summary-only
        """,
    )
    parser.add_argument(
        "pdf_file",
        help="Path to the CAS PDF file",
    )
    parser.add_argument(
        "-o", "--output",
        help="Output JSON file path (default: stdout)",
    )
    parser.add_argument(
        "-p", "--password",
        help="Password for encrypted PDF",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress all output except errors",
    )
    parser.add_argument(
        "--summary-only",
        action="store_true",
        help="Print the portfolio summary instead of the full JSON",
    )
    return parser


def main(argv=None) -> int:
    """CLI entry point."""
    args = build_arg_parser().parse_args(argv)

    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)

    try:
        outcome = parse_cas_pdf(
            args.pdf_file,
            password=args.password,
            config=EngineConfig.from_env(),
        )
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FILE_ERROR

    if not outcome.ok:
        return report_failure(outcome)

    statement = outcome.statement

    if args.summary_only:
        print(format_summary(statement))
        return EXIT_OK

    json_output = export_to_json(statement, args.output)

    if not args.output:
        print(json_output)

    if not args.quiet:
        print(
            f"\nParsed {statement.meta.cas_type.value}: "
            f"{statement.summary.holdings_count} holdings, "
            f"{statement.summary.funds_count} folios, "
            f"total {statement.summary.total_value:,.2f}",
            file=sys.stderr,
        )
        if statement.meta.warnings:
            print(
                f"Validation warnings: {len(statement.meta.warnings)}",
                file=sys.stderr,
            )

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
