"""Assemble the restore script from extracted COPY blocks.

The script disables foreign-key triggers, inserts every decoded row with
``ON CONFLICT DO NOTHING``, re-enables the triggers and finally moves the
primary-key sequences past the inserted values.

Two modes are supported:

  advanced  Full literal classification (arrays, JSON, timestamps, NUL
            stripping), per-table row counts and a guarded ``setval`` block
            for every column whose name contains ``id``.
  basic     NULL/number/boolean/string literals only and a single
            ``setval`` on the ``id`` column of each table that mentions one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from pgdump_inserts.copy_blocks import DumpBlock
from pgdump_inserts.copy_line import encode_row, format_value, format_value_basic

logger = logging.getLogger(__name__)

MODES = ["advanced", "basic"]

FORMATTERS: dict[str, Callable[[str], str]] = {
    "advanced": format_value,
    "basic": format_value_basic,
}


@dataclass(frozen=True)
class RowError:
    """A data row that could not be encoded and was left out of the script."""

    table: str
    row_number: int
    message: str

    def __str__(self) -> str:
        return f"Error on row {self.row_number} of table {self.table}: {self.message}"


@dataclass
class ScriptResult:
    """Generated SQL text plus the rows that were skipped."""

    script: str
    errors: list[RowError] = field(default_factory=list)


def format_timestamp(moment: datetime) -> str:
    """Render a UTC ISO-8601 timestamp with milliseconds and a ``Z`` suffix."""
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sql_string(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def unquote_identifier(name: str) -> str:
    return name.replace('"', "")


def is_id_column(column: str) -> bool:
    """Return True if the column name contains ``id`` (case-insensitive substring)."""
    return "id" in column.lower()


def header_lines(mode: str, generated_at: datetime) -> list[str]:
    return [
        "-- Data restore script using INSERT INTO",
        "-- Generated automatically from a PostgreSQL dump",
        f"-- Generated at: {format_timestamp(generated_at)}",
        f"-- Mode: {mode}",
        "",
    ]


def trigger_lines(enable: bool) -> list[str]:
    """PL/pgSQL block toggling all triggers on tables that own a foreign key."""
    action = "ENABLE" if enable else "DISABLE"
    title = "Re-enable" if enable else "Disable"
    return [
        f"-- {title} triggers to avoid foreign key problems during load",
        "DO $$",
        "DECLARE",
        "r RECORD;",
        "BEGIN",
        "FOR r IN",
        "SELECT conname, conrelid::regclass::text AS table_name",
        "FROM pg_constraint",
        "WHERE contype = 'f'",
        "LOOP",
        f"EXECUTE format('ALTER TABLE %s {action} TRIGGER ALL', r.table_name);",
        "END LOOP;",
        "END $$;",
        "",
    ]


def insert_lines(
    block: DumpBlock,
    formatter: Callable[[str], str],
    errors: list[RowError],
    *,
    count_comment: bool = True,
) -> list[str]:
    """INSERT statements for one block.

    Blank rows are skipped and not numbered. A row that fails to encode is
    recorded in *errors* and left out.
    """
    lines = [f"-- Data for {block.table}"]
    col_list = ", ".join(block.columns)
    row_number = 0
    inserted = 0

    for row in block.rows:
        if not row.strip():
            continue
        row_number += 1
        try:
            values = encode_row(row, formatter)
        except ValueError as exc:
            error = RowError(table=block.table, row_number=row_number, message=str(exc))
            logger.warning(str(error))
            errors.append(error)
            continue
        lines.append(
            f"INSERT INTO {block.table} ({col_list}) VALUES ({', '.join(values)}) "
            "ON CONFLICT DO NOTHING;"
        )
        inserted += 1

    if count_comment and inserted > 0:
        lines.append(f"-- {inserted} rows inserted into {block.table}")
    lines.append("")
    return lines


def sequence_lines(block: DumpBlock) -> list[str]:
    """Guarded ``setval`` blocks for every id-like column of *block*."""
    table = block.table
    schema_part, _, table_part = unquote_identifier(table).partition(".")
    max_query = sql_string(f"SELECT COALESCE(MAX(%I), 1) FROM {table}")
    lines: list[str] = []

    for column in block.columns:
        if not is_id_column(column):
            continue
        col = sql_string(unquote_identifier(column))
        lines.extend(
            [
                f"-- Adjust sequence for {table}.{column}",
                "DO $$",
                "DECLARE",
                "    seq_name text;",
                "    max_val bigint;",
                "    col_exists boolean;",
                "BEGIN",
                "    SELECT EXISTS(",
                "        SELECT 1 FROM information_schema.columns",
                f"        WHERE table_schema = {sql_string(schema_part)}",
                f"        AND table_name = {sql_string(table_part)}",
                f"        AND column_name = {col}",
                "    ) INTO col_exists;",
                "",
                "    IF col_exists THEN",
                f"        seq_name := pg_get_serial_sequence({sql_string(table)}, {col});",
                "        IF seq_name IS NOT NULL THEN",
                f"            EXECUTE format({max_query}, {col}) INTO max_val;",
                "            EXECUTE format('SELECT setval(%L, %s)', seq_name, max_val);",
                "        END IF;",
                "    END IF;",
                "END $$;",
                "",
            ]
        )
    return lines


def basic_sequence_lines(block: DumpBlock) -> list[str]:
    """Single ``setval`` on the ``id`` column when the column list mentions one."""
    if not any(is_id_column(column) for column in block.columns):
        return []
    table = block.table
    return [
        f"-- Adjust sequence for {table}",
        f"SELECT setval(pg_get_serial_sequence({sql_string(table)}, 'id'), "
        f"(SELECT MAX(id) FROM {table}));",
        "",
    ]


def build_insert_script(
    blocks: Iterable[DumpBlock],
    *,
    mode: str = "advanced",
    generated_at: datetime | None = None,
) -> ScriptResult:
    """Render the complete restore script for *blocks*.

    The output depends only on *blocks*, *mode* and *generated_at*.

    Raises:
        ValueError: if *mode* is not one of MODES.
    """
    if mode not in FORMATTERS:
        raise ValueError(f"Unknown mode {mode!r} (expected one of {', '.join(MODES)})")
    if generated_at is None:
        generated_at = datetime.now(timezone.utc)

    blocks = list(blocks)
    advanced = mode == "advanced"
    formatter = FORMATTERS[mode]
    errors: list[RowError] = []

    script = header_lines(mode, generated_at)
    script.extend(trigger_lines(enable=False))
    script.append("-- Insert data")
    for block in blocks:
        script.extend(insert_lines(block, formatter, errors, count_comment=advanced))
    script.extend(trigger_lines(enable=True))

    script.append("-- Adjust primary key sequences")
    for block in blocks:
        script.extend(sequence_lines(block) if advanced else basic_sequence_lines(block))

    if errors:
        script.append("-- WARNINGS:")
        script.append("-- The following errors were found during processing:")
        script.extend(f"-- {error}" for error in errors)
        script.append("")

    return ScriptResult(script="\n".join(script), errors=errors)
