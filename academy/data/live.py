"""SQLAlchemy-backed repositories used in live mode."""

import asyncio
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy import update as sql_update
from sqlalchemy.future import select

from .errors import ConflictError, FatalError, NotFoundError, TransientError
from .repository import Repository, Result

logger = logging.getLogger("live_store")

_TRANSIENT = (OperationalError, InterfaceError, ConnectionError, OSError, asyncio.TimeoutError)


def classify_fault(exc: BaseException, entity: str):
    """Map a driver/ORM exception onto Transient or Fatal."""
    if isinstance(exc, _TRANSIENT):
        return TransientError(f"backend unavailable while accessing {entity}: {exc.__class__.__name__}")
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return TransientError(f"connection lost while accessing {entity}")
    return FatalError(f"backend failure while accessing {entity}: {exc.__class__.__name__}")


class SqlRepository(Repository):

    def __init__(self, session_factory, model, record_cls, unique_keys=(), entity: Optional[str] = None):
        super().__init__(entity or model.__tablename__, record_cls, unique_keys)
        self.session_factory = session_factory
        self.model = model

    def _column(self, name: str):
        column = getattr(self.model, name, None)
        if column is None:
            raise FatalError(f"{self.entity} has no column {name!r}")
        return column

    async def get(self, row_id: int) -> Result:
        try:
            async with self.session_factory() as session:
                row = await session.get(self.model, row_id)
                if row is None:
                    return Result(None, NotFoundError(self.entity, row_id))
                return Result(self._records([row])[0])
        except FatalError as exc:
            logger.error(f"Malformed {self.entity} id={row_id}: {exc}")
            return Result(None, exc)
        except (SQLAlchemyError, *_TRANSIENT) as exc:
            logger.error(f"Error in get {self.entity} id={row_id}: {exc}")
            return Result(None, classify_fault(exc, self.entity))

    async def list(self, order_by: Optional[str] = None, descending: bool = False, **filters) -> Result:
        try:
            query = select(self.model).filter_by(**filters)
            if order_by:
                column = self._column(order_by)
                query = query.order_by(column.desc() if descending else column.asc())
            async with self.session_factory() as session:
                result = await session.execute(query)
                return Result(self._records(result.scalars().all()))
        except FatalError as exc:
            logger.error(f"Malformed {self.entity} rows for {filters}: {exc}")
            return Result([], exc)
        except (SQLAlchemyError, *_TRANSIENT) as exc:
            logger.error(f"Error in list {self.entity} filters={filters}: {exc}")
            return Result([], classify_fault(exc, self.entity))

    async def create(self, values: Dict[str, Any]) -> Result:
        try:
            async with self.session_factory() as session:
                row = self.model(**values)
                session.add(row)
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    return await self._conflict(values)
                await session.refresh(row)
                return Result(self._records([row])[0])
        except FatalError as exc:
            logger.error(f"Malformed {self.entity} after insert: {exc}")
            return Result(None, exc)
        except (SQLAlchemyError, *_TRANSIENT) as exc:
            logger.error(f"Error in create {self.entity}: {exc}")
            return Result(None, classify_fault(exc, self.entity))

    async def _conflict(self, values: Dict[str, Any]) -> Result:
        key = self.natural_key(values)
        if not self.unique_keys:
            return Result(None, ConflictError(f"{self.entity} insert violated a constraint"))
        existing, error = await self.find_one(**key)
        if error:
            return Result(None, error)
        if existing is None:
            # not a duplicate of the natural key, e.g. a foreign key violation
            logger.warning(f"{self.entity} insert for {key} violated a constraint")
            return Result(None, ConflictError(f"{self.entity} insert violated a constraint"))
        logger.info(f"{self.entity} already exists for {key}")
        return Result(None, ConflictError(f"{self.entity} already exists for {key}", existing=existing))

    async def update(self, row_id: int, changes: Dict[str, Any],
                     expect: Optional[Dict[str, Any]] = None) -> Result:
        try:
            async with self.session_factory() as session:
                if expect:
                    return await self._guarded_update(session, row_id, changes, expect)
                row = await session.get(self.model, row_id)
                if row is None:
                    return Result(None, NotFoundError(self.entity, row_id))
                for key, value in changes.items():
                    if key != "id":
                        setattr(row, key, value)
                await session.commit()
                await session.refresh(row)
                return Result(self._records([row])[0])
        except FatalError as exc:
            logger.error(f"Malformed {self.entity} id={row_id} after update: {exc}")
            return Result(None, exc)
        except (SQLAlchemyError, *_TRANSIENT) as exc:
            logger.error(f"Error in update {self.entity} id={row_id}: {exc}")
            return Result(None, classify_fault(exc, self.entity))

    async def _guarded_update(self, session, row_id: int, changes: Dict[str, Any],
                              expect: Dict[str, Any]) -> Result:
        # UPDATE ... WHERE id = :id AND <expect>, so the database decides the race
        conditions = [self.model.id == row_id]
        for name, value in expect.items():
            column = self._column(name)
            conditions.append(column.is_(None) if value is None else column == value)
        values = {k: v for k, v in changes.items() if k != "id"}
        query = (
            sql_update(self.model)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(query)
        await session.commit()

        row = await session.get(self.model, row_id, populate_existing=True)
        if row is None:
            return Result(None, NotFoundError(self.entity, row_id))
        current = self._records([row])[0]
        if not result.rowcount:
            logger.info(f"{self.entity} id={row_id} no longer matches {expect}, update skipped")
            return self.stale(current, expect)
        return Result(current)
