"""storage.py — the narrow row interface the converter persists labels through.

The converter only needs two operations: insert one row, and fetch the rows
belonging to one addressbook. `JsonDatabase` keeps tables as lists of row
dicts and, when given a path, rewrites the JSON file after every insert.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol, Sequence

logger = logging.getLogger(__name__)


class Database(Protocol):
    def insert(self, table: str, columns: Sequence[str], values: Sequence[Any]) -> None: ...

    def get(
        self,
        scope_id: str,
        columns: Sequence[str],
        table: str,
        distinct: bool = False,
        scope_column: str = "id",
    ) -> list[dict[str, Any]]: ...


class JsonDatabase:
    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path is not None else None
        self.tables: dict[str, list[dict[str, Any]]] = {}
        if self.path is not None and self.path.exists():
            self.tables = json.loads(self.path.read_text(encoding="utf-8"))

    def insert(self, table: str, columns: Sequence[str], values: Sequence[Any]) -> None:
        if len(columns) != len(values):
            raise ValueError(f"{len(columns)} columns but {len(values)} values for table {table}")
        row = dict(zip(columns, values))
        self.tables.setdefault(table, []).append(row)
        logger.debug("insert into %s: %r", table, row)
        self._flush()

    def get(
        self,
        scope_id: str,
        columns: Sequence[str],
        table: str,
        distinct: bool = False,
        scope_column: str = "id",
    ) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        for row in self.tables.get(table, []):
            if str(row.get(scope_column)) != str(scope_id):
                continue
            picked = {c: row.get(c) for c in columns}
            if distinct and picked in rows:
                continue
            rows.append(picked)
        return rows

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.tables, indent=2), encoding="utf-8")
