"""Statement templates and positional parameter binding.

The network owns SQL validation; this module only renders the fixed
demonstration statements and substitutes ``?`` placeholders with literals.
"""

from __future__ import annotations

import re
from typing import Sequence, Union

from tablesync.errors import InvalidPrefixError, StatementBindingError

Parameter = Union[str, int, float, bool, None]

DEMO_SCHEMA = "id integer primary key, name text, block text, tx text"
DEMO_COLUMNS: tuple[str, ...] = ("id", "name", "block", "tx")

_PREFIX_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_QUOTES = {"'", '"', "`"}


def validate_prefix(prefix: str) -> str:
    """Return ``prefix`` stripped, raising when it cannot name a table."""

    candidate = (prefix or "").strip()
    if not candidate:
        raise InvalidPrefixError("Table prefix must not be empty.", code="prefix_empty")
    if not _PREFIX_RE.match(candidate):
        raise InvalidPrefixError(
            f"Table prefix {candidate!r} may only contain letters, digits and underscores "
            "and must not start with a digit.",
            code="prefix_invalid",
        )
    return candidate


def create_table_statement(prefix: str) -> str:
    return f'CREATE TABLE "{validate_prefix(prefix)}" ({DEMO_SCHEMA});'


def insert_row_statement(table_name: str) -> str:
    return f"INSERT INTO {table_name} (name, block, tx) VALUES (?, BLOCK_NUM(), TXN_HASH());"


def select_all_statement(table_name: str) -> str:
    return f"SELECT * FROM {table_name};"


def render_literal(value: Parameter) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return "'" + value.replace("'", "''") + "'"
    raise StatementBindingError(
        f"Unsupported parameter type {type(value).__name__}; only primitives can be bound.",
        code="bind_type",
    )


def count_placeholders(statement: str) -> int:
    return sum(1 for _ in _placeholder_positions(statement))


def bind_statement(statement: str, parameters: Sequence[Parameter] = ()) -> str:
    """Replace each unquoted ``?`` in ``statement`` with the next parameter."""

    positions = list(_placeholder_positions(statement))
    if len(positions) != len(parameters):
        raise StatementBindingError(
            f"Statement expects {len(positions)} parameter(s) but {len(parameters)} were given.",
            code="bind_count",
        )
    if not positions:
        return statement
    parts: list[str] = []
    cursor = 0
    for position, value in zip(positions, parameters):
        parts.append(statement[cursor:position])
        parts.append(render_literal(value))
        cursor = position + 1
    parts.append(statement[cursor:])
    return "".join(parts)


def _placeholder_positions(statement: str):
    quote: str | None = None
    index = 0
    length = len(statement)
    while index < length:
        char = statement[index]
        if quote:
            if char == quote:
                # doubled quote is an escaped quote
                if index + 1 < length and statement[index + 1] == quote:
                    index += 2
                    continue
                quote = None
        elif char in _QUOTES:
            quote = char
        elif char == "?":
            yield index
        index += 1
