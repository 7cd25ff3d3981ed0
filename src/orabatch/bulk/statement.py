"""
Builders for the array-bind DML statements used by the bulk engine.

Identifiers are validated and interpolated; values only ever travel as
binds. Bind names are generated (``b0``, ``b1``, ...) so that column names
which are reserved words in bind position still work.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from orabatch.exception import (
    EmptyDatasetError,
    InvalidIdentifierError,
    MissingKeyColumnsError,
    NoUpdatableColumnsError,
)

IDENTIFIER = re.compile(r'^(?:[A-Za-z][A-Za-z0-9_$#]{0,127}|"[^"]{1,128}")$')

Row = Mapping[str, Any]


def validate_identifier(name: str, what: str = "identifier") -> str:
    if not isinstance(name, str) or not all(
        IDENTIFIER.match(part) for part in name.split(".")
    ):
        raise InvalidIdentifierError(f"Invalid {what}: {name!r}")
    return name


def columns_of(rows: Sequence[Row]) -> List[str]:
    """Columns of the first row; rows are assumed homogeneous"""
    if not rows:
        raise EmptyDatasetError("Bulk operation requires at least one row")
    columns = list(rows[0].keys())
    for column in columns:
        validate_identifier(column, "column name")
    return columns


@dataclass(frozen=True)
class BulkStatement:
    sql: str
    columns: Tuple[str, ...]

    def binds_for(self, row: Row) -> Dict[str, Any]:
        # A column missing from a later row binds as NULL
        return {
            f"b{index}": row.get(column)
            for index, column in enumerate(self.columns)
        }


def _require_columns(columns: Sequence[str], operation: str) -> List[str]:
    if not columns:
        raise MissingKeyColumnsError(
            f"{operation} requires at least one key column"
        )
    return [validate_identifier(c, "column name") for c in columns]


def build_insert(table: str, rows: Sequence[Row]) -> BulkStatement:
    validate_identifier(table, "table name")
    columns = columns_of(rows)
    placeholders = ", ".join(f":b{index}" for index in range(len(columns)))
    sql = (
        f"INSERT INTO {table} ({', '.join(columns)}) "
        f"VALUES ({placeholders})"
    )
    return BulkStatement(sql, tuple(columns))


def build_update(
    table: str, rows: Sequence[Row], where_columns: Sequence[str]
) -> BulkStatement:
    validate_identifier(table, "table name")
    where = _require_columns(where_columns, "Bulk update")
    set_columns = [c for c in columns_of(rows) if c not in where]
    if not set_columns:
        raise NoUpdatableColumnsError(
            f"No columns left to update in {table} besides "
            f"{', '.join(where)}"
        )
    bound = set_columns + where
    set_clause = ", ".join(
        f"{column} = :b{index}" for index, column in enumerate(set_columns)
    )
    offset = len(set_columns)
    where_clause = " AND ".join(
        f"{column} = :b{offset + index}" for index, column in enumerate(where)
    )
    sql = f"UPDATE {table} SET {set_clause} WHERE {where_clause}"
    return BulkStatement(sql, tuple(bound))


def build_delete(
    table: str, rows: Sequence[Row], where_columns: Sequence[str]
) -> BulkStatement:
    validate_identifier(table, "table name")
    where = _require_columns(where_columns, "Bulk delete")
    if not rows:
        raise EmptyDatasetError("Bulk operation requires at least one row")
    where_clause = " AND ".join(
        f"{column} = :b{index}" for index, column in enumerate(where)
    )
    sql = f"DELETE FROM {table} WHERE {where_clause}"
    return BulkStatement(sql, tuple(where))


@dataclass(frozen=True)
class MergeStatement:
    sql: str
    binds: Dict[str, Any]


def build_merge(
    table: str, rows: Sequence[Row], key_columns: Sequence[str]
) -> MergeStatement:
    """Build one MERGE covering every row.

    The source rows are a UNION ALL of ``SELECT ... FROM dual`` so the whole
    upsert is a single statement and a single round trip.
    """
    validate_identifier(table, "table name")
    keys = _require_columns(key_columns, "Bulk upsert")
    columns = columns_of(rows)
    missing = [key for key in keys if key not in columns]
    if missing:
        raise MissingKeyColumnsError(
            f"Key columns not present in the data: {', '.join(missing)}"
        )
    update_columns = [c for c in columns if c not in keys]

    binds: Dict[str, Any] = {}
    selects = []
    for row_index, row in enumerate(rows):
        fields = []
        for col_index, column in enumerate(columns):
            name = f"r{row_index}_{col_index}"
            binds[name] = row.get(column)
            fields.append(f":{name} AS {column}")
        selects.append(f"SELECT {', '.join(fields)} FROM dual")

    on_clause = " AND ".join(f"target.{k} = source.{k}" for k in keys)
    parts = [
        f"MERGE INTO {table} target",
        f"USING ({' UNION ALL '.join(selects)}) source",
        f"ON ({on_clause})",
    ]
    if update_columns:
        set_clause = ", ".join(
            f"target.{c} = source.{c}" for c in update_columns
        )
        parts.append(f"WHEN MATCHED THEN UPDATE SET {set_clause}")
    parts.append(
        f"WHEN NOT MATCHED THEN INSERT ({', '.join(columns)}) "
        f"VALUES ({', '.join(f'source.{c}' for c in columns)})"
    )
    return MergeStatement("\n".join(parts), binds)
