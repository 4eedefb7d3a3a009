#!/usr/bin/env python3
"""Convert the COPY blocks of a plain-text PostgreSQL dump into INSERT statements.

The generated script disables foreign-key triggers, inserts every row with
ON CONFLICT DO NOTHING, re-enables the triggers and adjusts the primary-key
sequences. Rows that cannot be parsed are skipped and listed as comments at
the end of the script.

Usage:
    python scripts/extract_inserts.py <dump_file> [output_file] [--basic]

    output_file defaults to restore_inserts_advanced.sql
    (restore_inserts.sql with --basic)
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))
from pgdump_inserts.copy_blocks import extract_copy_blocks
from pgdump_inserts.insert_script import build_insert_script

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = {
    "advanced": Path("restore_inserts_advanced.sql"),
    "basic": Path("restore_inserts.sql"),
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "dump_file",
        type=Path,
        help="Plain-text pg_dump file containing COPY ... FROM stdin blocks.",
    )
    parser.add_argument(
        "output_file",
        type=Path,
        nargs="?",
        default=None,
        help="Where to write the generated SQL script "
        "(default: restore_inserts_advanced.sql, or restore_inserts.sql with --basic).",
    )
    parser.add_argument(
        "--basic",
        action="store_true",
        default=False,
        help="Use the basic value formatter and a single setval on each table's id column.",
    )

    args = parser.parse_args(argv)
    args.mode = "basic" if args.basic else "advanced"
    if args.output_file is None:
        args.output_file = DEFAULT_OUTPUT[args.mode]
    return args


def convert_dump(dump_file: Path, output_file: Path, mode: str = "advanced") -> list[str]:
    """Read *dump_file*, write the INSERT script to *output_file*.

    Returns warnings for the operator: dropped COPY blocks first, then the
    per-row errors that are also listed at the end of the script.
    """
    logger.info(f"Processing dump file {dump_file} ...")
    # Line endings are normalized by the extractor.
    with open(dump_file, encoding="utf-8", errors="replace", newline="") as f:
        text = f.read()

    extracted = extract_copy_blocks(text)
    result = build_insert_script(extracted.blocks, mode=mode)

    with open(output_file, "w", encoding="utf-8", newline="") as f:
        f.write(result.script)
    logger.info(f"Script saved to {output_file}")
    return extracted.errors + [str(error) for error in result.errors]


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    if not args.dump_file.exists():
        logger.error(f"Dump file not found: {args.dump_file}")
        sys.exit(1)

    try:
        errors = convert_dump(args.dump_file, args.output_file, args.mode)
    except OSError as exc:
        logger.error(f"Conversion failed: {exc}")
        sys.exit(1)

    logger.info("Script generated successfully.")
    logger.info("To use it:")
    logger.info(f"  1. Open {args.output_file} in your SQL client")
    logger.info("  2. Run the whole script")
    logger.info("  3. Rows load without foreign key ordering problems")

    if errors:
        logger.warning(f"{len(errors)} warnings found during processing:")
        for error in errors:
            logger.warning(f"  - {error}")


if __name__ == "__main__":
    main()
