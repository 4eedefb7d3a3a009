#!/usr/bin/env python3
"""Generate test fixture data for the pgdump-inserts test suite.

Creates sample_dump.sql, a small plain-text pg_dump with two terminated
COPY blocks and one block left open at EOF.

Run from the repo root:
    python tests/fixtures/create_fixtures.py

The generated file is checked into the repo so tests can run without
regenerating it.  Re-run this script if you need to modify the fixture data.
"""

from pathlib import Path

FIXTURE_DIR = Path(__file__).parent

PREAMBLE = [
    "--",
    "-- PostgreSQL database dump",
    "--",
    "",
    "SET statement_timeout = 0;",
    "SET client_encoding = 'UTF8';",
    "",
    "CREATE TABLE public.users (",
    "    id integer NOT NULL,",
    "    name text,",
    "    email text,",
    "    active boolean,",
    "    created_at timestamp without time zone",
    ");",
    "",
]


def row(*fields: str) -> str:
    """Join already-escaped COPY fields with tabs."""
    return "\t".join(fields)


def table_data_comment(table: str) -> list[str]:
    return [
        "--",
        f"-- Data for Name: {table}; Type: TABLE DATA; Schema: public; Owner: app",
        "--",
        "",
    ]


def users_block() -> list[str]:
    """Users, including a blank data line and escaped backslash/tab values."""
    return [
        *table_data_comment("users"),
        'COPY public."users" (id, name, email, active, created_at) FROM stdin;',
        row("1", "João Silva", r"\N", "t", "2025-06-09 16:02:21.497"),
        row("2", "Mary O'Brien", "mary@example.com", "f", "2025-06-10 08:00:00"),
        "",
        row("3", r"Back\\slash", r"tab\there", "t", "2025-06-11 09:30:00"),
        r"\.",
        "",
    ]


def orders_block() -> list[str]:
    """Orders; row 3 ends with a dangling backslash and must be skipped."""
    return [
        *table_data_comment("orders"),
        'COPY public."orders" (id, user_id, tags, total, notes) FROM stdin;',
        row("10", "1", "{a,b}", "19.90", "first order"),
        row("11", "2", "{}", "5", r"line one\nline two"),
        row("12", "2", "{}", "7", "broken\\"),
        row("13", "3", '{"it\'s"}', "-1.5", r"\N"),
        r"\.",
        "",
    ]


def drafts_block() -> list[str]:
    """A COPY block with no terminator before EOF."""
    return [
        *table_data_comment("drafts"),
        'COPY public."drafts" (id, body) FROM stdin;',
        row("1", "never terminated"),
    ]


def create_sample_dump() -> None:
    lines = PREAMBLE + users_block() + orders_block() + drafts_block()
    path = FIXTURE_DIR / "sample_dump.sql"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    print(f"  {path.name}: {len(lines)} lines")


def main() -> None:
    print("Creating fixtures...")
    create_sample_dump()
    print("Done.")


if __name__ == "__main__":
    main()
