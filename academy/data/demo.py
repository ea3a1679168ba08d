"""In-memory store backing demo mode.

Rows live in plain dicts inside a ``DemoDataset``. Each operation runs to
completion without awaiting between its read and its write, so on a single
event loop the uniqueness check in ``create`` and the insert are one step.
"""

import asyncio
import copy
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .errors import ConflictError, FatalError, NotFoundError
from .repository import Repository, Result

logger = logging.getLogger("demo_store")

TABLES = (
    "users",
    "courses",
    "course_content",
    "enrollments",
    "lesson_progress",
    "video_progress",
    "learning_sessions",
    "assignments",
    "assignment_submissions",
)


class DemoDataset:
    """Mutable tables for one running process. Not durable."""

    def __init__(self, seed: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = {name: [] for name in TABLES}
        self._next_ids: Dict[str, int] = {name: 1 for name in TABLES}
        for table, rows in (seed or {}).items():
            for row in rows:
                self.insert(table, copy.deepcopy(row))

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        rows = self.tables.setdefault(table, [])
        if row.get("id") is None:
            row["id"] = self._next_ids.get(table, 1)
        self._next_ids[table] = max(self._next_ids.get(table, 1), row["id"] + 1)
        rows.append(row)
        return row


def _sort_key(value: Any):
    # None sorts first so ordering never compares None with a value
    if value is None:
        return (0, datetime.min.replace(tzinfo=timezone.utc))
    return (1, value)


class MemoryRepository(Repository):

    def __init__(self, dataset: DemoDataset, table: str, record_cls, unique_keys=(), entity: Optional[str] = None):
        super().__init__(entity or table, record_cls, unique_keys)
        self.dataset = dataset
        self.table = table

    @property
    def _rows(self) -> List[Dict[str, Any]]:
        return self.dataset.tables.setdefault(self.table, [])

    def _match(self, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [row for row in self._rows if all(row.get(k) == v for k, v in filters.items())]

    async def get(self, row_id: int) -> Result:
        await asyncio.sleep(0)
        for row in self._rows:
            if row.get("id") == row_id:
                return self._one(row)
        return Result(None, NotFoundError(self.entity, row_id))

    async def list(self, order_by: Optional[str] = None, descending: bool = False, **filters) -> Result:
        await asyncio.sleep(0)
        rows = self._match(filters)
        if order_by:
            rows = sorted(rows, key=lambda row: _sort_key(row.get(order_by)), reverse=descending)
        try:
            return Result(self._records(rows))
        except FatalError as exc:
            logger.error(f"Demo table {self.table} holds a malformed row: {exc}")
            return Result([], exc)

    async def create(self, values: Dict[str, Any]) -> Result:
        await asyncio.sleep(0)
        if self.unique_keys:
            existing = self._match(self.natural_key(values))
            if existing:
                return Result(None, ConflictError(
                    f"{self.entity} already exists for {self.natural_key(values)}",
                    existing=self._one(existing[0]).value,
                ))
        row = dict(values)
        row.pop("id", None)
        candidate = dict(row, id=self.dataset._next_ids.get(self.table, 1))
        # validate before storing so a bad row never enters the dataset
        checked = self._one(candidate)
        if checked.error:
            return checked
        self.dataset.insert(self.table, candidate)
        return checked

    async def update(self, row_id: int, changes: Dict[str, Any],
                     expect: Optional[Dict[str, Any]] = None) -> Result:
        await asyncio.sleep(0)
        for row in self._rows:
            if row.get("id") == row_id:
                if expect and any(row.get(k) != v for k, v in expect.items()):
                    current = self._one(row)
                    return current if current.error else self.stale(current.value, expect)
                merged = dict(row, **{k: v for k, v in changes.items() if k != "id"})
                checked = self._one(merged)
                if checked.error:
                    return checked
                row.update(merged)
                return checked
        return Result(None, NotFoundError(self.entity, row_id))

    def _one(self, row: Dict[str, Any]) -> Result:
        try:
            return Result(self._records([row])[0])
        except FatalError as exc:
            logger.error(f"Rejected {self.entity} row in demo store: {exc}")
            return Result(None, exc)
