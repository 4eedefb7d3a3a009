"""Tokenize COPY text-format rows and turn their fields into SQL literals.

Classification is purely lexical: no column type from the source schema is
consulted, so a numeric-looking text value is emitted as a number and a
string that starts like a date and contains a colon is treated as a
timestamp.
"""

from __future__ import annotations

import re
from collections.abc import Callable

COPY_NULL = "\\N"

NUMERIC_RE = re.compile(r"-?[0-9]+(?:\.[0-9]+)?")
DATE_PREFIX_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

# Escapes decoded by the tokenizer. \N is kept verbatim for the classifier.
_ESCAPES = {
    "N": COPY_NULL,
    "t": "\t",
    "n": "\n",
    "\\": "\\",
}


class CopyRowError(ValueError):
    """Raised when a COPY data row cannot be tokenized."""


def parse_copy_line(line: str) -> list[str]:
    """Split one COPY data row on unescaped tabs.

    An empty field between two tabs is kept, but an empty field after the
    last tab is dropped. Unknown escapes keep their backslash.

    Raises:
        CopyRowError: if the row ends with a lone backslash.
    """
    values: list[str] = []
    current: list[str] = []
    i = 0
    while i < len(line):
        char = line[i]
        if char == "\t":
            values.append("".join(current))
            current = []
        elif char == "\\":
            if i + 1 >= len(line):
                raise CopyRowError(f"unbalanced escape at end of line: {line!r}")
            decoded = _ESCAPES.get(line[i + 1])
            if decoded is None:
                current.append(char)
            else:
                current.append(decoded)
                i += 1
        else:
            current.append(char)
        i += 1

    if current:
        values.append("".join(current))
    return values


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _is_bracketed(value: str) -> bool:
    return (value.startswith("{") and value.endswith("}")) or (
        value.startswith("[") and value.endswith("]")
    )


def format_value(value: str) -> str:
    """Format a decoded COPY field as a SQL literal.

    Rules, first match wins:
        - ``\\N`` or empty -> NULL
        - integer or decimal -> unquoted
        - ``t`` / ``f`` -> quoted one-character string
        - array/JSON text (``{...}`` or ``[...]``) -> quoted
        - date prefix plus a colon (timestamp) -> quoted
        - anything else -> quoted with NUL characters removed
    """
    if value == COPY_NULL or value == "":
        return "NULL"

    if NUMERIC_RE.fullmatch(value):
        return value

    if value in ("t", "f"):
        return f"'{value}'"

    if _is_bracketed(value):
        return _quote(value)

    if DATE_PREFIX_RE.match(value) and ":" in value:
        return _quote(value)

    return _quote(value.replace("\0", ""))


def format_value_basic(value: str) -> str:
    """Format a field with only the NULL, number and boolean rules."""
    if value == COPY_NULL or value == "":
        return "NULL"
    if NUMERIC_RE.fullmatch(value):
        return value
    if value in ("t", "f"):
        return f"'{value}'"
    return _quote(value)


def encode_row(line: str, formatter: Callable[[str], str] = format_value) -> list[str]:
    """Tokenize a raw COPY row and format every field as a SQL literal."""
    return [formatter(value) for value in parse_copy_line(line)]
