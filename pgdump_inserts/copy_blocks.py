"""Extract ``COPY ... FROM stdin`` data blocks from a plain-text pg_dump.

Only the COPY sections are consumed; all other dump content (DDL, SET
statements, comments) is ignored. A block is kept only once its ``\\.``
terminator has been seen.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# COPY public."users" (id, name) FROM stdin;
COPY_HEADER_RE = re.compile(r'COPY ([^"]+"[^"]+") \(([^)]+)\) FROM stdin;?')

COPY_TERMINATOR = "\\."

# Number of tables listed in the post-extraction summary.
PREVIEW_TABLES = 5


@dataclass(frozen=True)
class DumpBlock:
    """One closed COPY section: table identifier, column names and raw rows."""

    table: str
    columns: tuple[str, ...]
    data: str

    @property
    def rows(self) -> list[str]:
        return self.data.split("\n")


@dataclass
class ExtractResult:
    """Blocks found in a dump plus notes on blocks that were dropped."""

    blocks: list[DumpBlock] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class _PartialBlock:
    table: str
    columns: tuple[str, ...]
    lines: list[str] = field(default_factory=list)

    def close(self) -> DumpBlock:
        return DumpBlock(table=self.table, columns=self.columns, data="\n".join(self.lines))


def split_columns(columns: str) -> tuple[str, ...]:
    """Split a COPY header column list into trimmed column names."""
    return tuple(col.strip() for col in columns.split(","))


def match_copy_header(line: str) -> tuple[str, tuple[str, ...]] | None:
    """Return (table, columns) if the line is a COPY header, else None."""
    m = COPY_HEADER_RE.fullmatch(line)
    if not m:
        return None
    return m.group(1), split_columns(m.group(2))


def _discard(result: ExtractResult, message: str) -> None:
    logger.warning(message)
    result.errors.append(message)


def extract_copy_blocks(text: str) -> ExtractResult:
    """Group the data lines of every terminated COPY block in the dump.

    The scan is a two-state machine: scanning (``partial is None``) or
    capturing a block. A header seen while capturing starts a new block and
    drops the unterminated one. A block still open at EOF is dropped. Each
    dropped block is noted in ``errors``; it never reaches ``blocks``.
    """
    result = ExtractResult()
    partial: _PartialBlock | None = None

    for raw_line in text.split("\n"):
        line = raw_line.removesuffix("\r")

        header = match_copy_header(line)
        if header is not None:
            table, columns = header
            if partial is not None:
                _discard(result, f"COPY block for {partial.table} was never terminated; discarding")
            logger.info(f"Found COPY: {table}")
            partial = _PartialBlock(table=table, columns=columns)
            continue

        if partial is None:
            continue

        if line == COPY_TERMINATOR:
            logger.info(f"Closing COPY: {partial.table}")
            result.blocks.append(partial.close())
            partial = None
            continue

        partial.lines.append(line)

    if partial is not None:
        _discard(
            result,
            f"Reached end of dump inside COPY block for {partial.table}; "
            f"discarding {len(partial.lines):,} lines",
        )

    logger.info(f"Found {len(result.blocks)} tables with data")
    for i, block in enumerate(result.blocks[:PREVIEW_TABLES], start=1):
        logger.info(f"  {i}. {block.table} - {len(block.rows):,} lines")

    return result
