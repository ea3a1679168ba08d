"""Uniform repository contract shared by the live and demo stores."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, NamedTuple, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError as ShapeError

from .errors import STALE_ROW, AcademyError, ConflictError, FatalError

R = TypeVar("R", bound=BaseModel)


class Result(NamedTuple):
    value: Any
    error: Optional[AcademyError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def to_record(record_cls: Type[R], row: Any, entity: str) -> R:
    """Validate a backend row into its record type or raise ``FatalError``."""
    try:
        return record_cls.model_validate(row)
    except ShapeError as exc:
        raise FatalError(f"malformed {entity} row: {exc.error_count()} invalid field(s)") from exc


class Repository(ABC, Generic[R]):
    """get/list/create/update over one table.

    ``unique_keys`` names the natural key columns; ``create`` refuses a row
    whose natural key already exists and reports the existing row through a
    ``ConflictError``.
    """

    def __init__(self, entity: str, record_cls: Type[R], unique_keys: Sequence[str] = ()):
        self.entity = entity
        self.record_cls = record_cls
        self.unique_keys = tuple(unique_keys)

    @abstractmethod
    async def get(self, row_id: int) -> Result:
        ...

    @abstractmethod
    async def list(self, order_by: Optional[str] = None, descending: bool = False, **filters) -> Result:
        ...

    @abstractmethod
    async def create(self, values: Dict[str, Any]) -> Result:
        ...

    @abstractmethod
    async def update(self, row_id: int, changes: Dict[str, Any],
                     expect: Optional[Dict[str, Any]] = None) -> Result:
        """Apply ``changes`` only while the row still matches ``expect``.

        The check and the write are one step. A row that no longer matches
        is left alone and reported as a ``ConflictError`` carrying its
        current state.
        """

    async def find_one(self, **filters) -> Result:
        """First row matching ``filters``; ``(None, None)`` when there is none."""
        rows, error = await self.list(**filters)
        if error:
            return Result(None, error)
        return Result(rows[0] if rows else None)

    def stale(self, current: Any, expect: Dict[str, Any]) -> Result:
        return Result(None, ConflictError(f"{self.entity} changed, expected {expect}", existing=current,
                                          code=STALE_ROW))

    def natural_key(self, values: Dict[str, Any]) -> Dict[str, Any]:
        return {key: values.get(key) for key in self.unique_keys}

    def _records(self, rows: List[Any]) -> List[R]:
        return [to_record(self.record_cls, row, self.entity) for row in rows]
