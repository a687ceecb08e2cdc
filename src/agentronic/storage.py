from __future__ import annotations

import json
import logging
import threading
import uuid
from copy import deepcopy
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from agentronic.errors import RecordNotFoundError

logger = logging.getLogger(__name__)

TABLES: tuple[str, ...] = (
    "agents",
    "compositions",
    "parts",
    "measures",
    "notes",
    "analysis_results",
    "real_time_events",
)


def _new_id() -> str:
    return uuid.uuid4().hex


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class RecordStore:
    """In-process record storage keyed by table name and generated id.

    Records are plain JSON-compatible dicts. Callers receive copies, so the
    stored rows cannot be mutated through a returned value.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tables: dict[str, dict[str, dict[str, Any]]] = {name: {} for name in TABLES}

    def _table(self, table: str) -> dict[str, dict[str, Any]]:
        try:
            return self._tables[table]
        except KeyError:
            raise ValueError(f"Unknown table: {table}") from None

    def insert(self, table: str, record: Mapping[str, Any]) -> dict[str, Any]:
        row = deepcopy(dict(record))
        row["id"] = _new_id()
        row.setdefault("created_at", _utc_now())
        with self._lock:
            self._table(table)[row["id"]] = row
        logger.debug("Inserted %s/%s", table, row["id"])
        return deepcopy(row)

    def insert_many(self, table: str, records: list[Mapping[str, Any]]) -> list[dict[str, Any]]:
        return [self.insert(table, record) for record in records]

    def get(self, table: str, record_id: str) -> dict[str, Any]:
        with self._lock:
            row = self._table(table).get(record_id)
        if row is None:
            raise RecordNotFoundError(table, record_id)
        return deepcopy(row)

    def select(self, table: str, **filters: Any) -> list[dict[str, Any]]:
        with self._lock:
            rows = list(self._table(table).values())
        return [
            deepcopy(row)
            for row in rows
            if all(row.get(column) == value for column, value in filters.items())
        ]

    def count(self, table: str) -> int:
        with self._lock:
            return len(self._table(table))

    def dump(self, path: str | Path) -> Path:
        output = Path(path)
        output.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            payload = deepcopy(self._tables)
        output.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        logger.info("Wrote record store to %s", output)
        return output

    @classmethod
    def load(cls, path: str | Path) -> "RecordStore":
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError("Record store JSON root must be an object.")
        store = cls()
        for table, rows in raw.items():
            if table not in store._tables:
                raise ValueError(f"Unknown table in record store file: {table}")
            if not isinstance(rows, dict):
                raise ValueError(f"Table {table} must be an object keyed by id.")
            store._tables[table] = {str(k): dict(v) for k, v in rows.items()}
        logger.info("Loaded record store from %s", path)
        return store

    @classmethod
    def open(cls, path: str | Path | None) -> "RecordStore":
        if path is not None and Path(path).exists():
            return cls.load(path)
        return cls()
