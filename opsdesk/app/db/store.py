"""
Record store over the relational database.

Wraps the async SQLAlchemy session factory behind a small set of
table-level operations (query, count, sum, get, update, insert) that
always return a `Result` envelope. Database failures are logged and come
back as `StoreError` failures instead of propagating.

Every call opens its own session, so callers may fan out concurrent
calls (e.g. chunked batch settlement) without sharing session state.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from opsdesk.app.core.clock import utcnow
from opsdesk.app.core.exceptions import AppException, StoreError, ValidationError
from opsdesk.app.core.result import Result
from opsdesk.app.db.session import AsyncSessionLocal

logger = logging.getLogger(__name__)

FILTER_OPS = {"eq", "neq", "in", "gte", "lte", "gt", "lt", "ilike", "is_null"}


@dataclass(frozen=True)
class QueryFilter:
    """One `field <op> value` condition; conditions are AND-ed together."""
    field: str
    op: str = "eq"
    value: Any = None


@dataclass(frozen=True)
class Ordering:
    field: str
    descending: bool = False


class RecordStore:
    """Table-level access to the back-office records."""

    def __init__(self, session_factory: async_sessionmaker = AsyncSessionLocal):
        self._session_factory = session_factory

    async def query(
        self,
        model,
        filters: Iterable[QueryFilter] = (),
        order: Sequence[Ordering] = (),
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Result[List[Any]]:
        async def work(session: AsyncSession):
            stmt = select(model).where(*self._conditions(model, filters))
            for ordering in order:
                column = self._column(model, ordering.field)
                stmt = stmt.order_by(column.desc() if ordering.descending else column.asc())
            if offset:
                stmt = stmt.offset(offset)
            if limit is not None:
                stmt = stmt.limit(limit)
            result = await session.execute(stmt)
            return list(result.scalars().all())

        return await self._run("query", model, work)

    async def count(self, model, filters: Iterable[QueryFilter] = ()) -> Result[int]:
        async def work(session: AsyncSession):
            stmt = select(func.count()).select_from(model).where(*self._conditions(model, filters))
            return (await session.execute(stmt)).scalar_one()

        return await self._run("count", model, work)

    async def sum(self, model, field: str, filters: Iterable[QueryFilter] = ()) -> Result[float]:
        async def work(session: AsyncSession):
            column = self._column(model, field)
            stmt = select(func.coalesce(func.sum(column), 0)).where(*self._conditions(model, filters))
            return float((await session.execute(stmt)).scalar_one())

        return await self._run("sum", model, work)

    async def get(self, model, record_id: Any) -> Result[Optional[Any]]:
        async def work(session: AsyncSession):
            return await session.get(model, record_id)

        return await self._run("get", model, work)

    async def update(
        self,
        model,
        record_id: Any,
        fields: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> Result[int]:
        """
        Partial update by primary key.

        `expected` turns the write into a conditional one
        (`UPDATE ... WHERE id = :id AND field = :value`); the data of the
        result is the number of rows that matched.
        """
        values = dict(fields)
        if hasattr(model, "updated_at"):
            values.setdefault("updated_at", utcnow())

        async def work(session: AsyncSession):
            guards = [QueryFilter(name, "eq", value) for name, value in (expected or {}).items()]
            stmt = (
                update(model)
                .where(model.id == record_id, *self._conditions(model, guards))
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount

        return await self._run("update", model, work)

    async def insert(self, model, fields: Dict[str, Any]) -> Result[Any]:
        async def work(session: AsyncSession):
            row = model(**fields)
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return row

        return await self._run("insert", model, work)

    async def _run(self, operation: str, model, work: Callable[[AsyncSession], Awaitable[Any]]) -> Result:
        table = model.__tablename__
        log_extra = {"operation": operation, "table": table}
        async with self._session_factory() as session:
            try:
                return Result.success(await work(session))
            except AppException as exc:
                await session.rollback()
                return Result.failure(exc)
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error("Store operation failed", extra={**log_extra, "error": str(exc)})
            except Exception:
                # Driver-level errors (e.g. a refused connection) are not wrapped by SQLAlchemy.
                logger.exception("Store operation failed unexpectedly", extra=log_extra)
                await session.rollback()
        return Result.failure(StoreError(f"Failed to {operation} {table}", details=log_extra))

    def _conditions(self, model, filters: Iterable[QueryFilter]) -> list:
        return [self._condition(model, item) for item in filters]

    def _condition(self, model, item: QueryFilter):
        column = self._column(model, item.field)
        op = item.op
        if op not in FILTER_OPS:
            raise ValidationError(f"Unsupported filter operator '{op}'")
        if op == "eq":
            return column == item.value
        if op == "neq":
            return column != item.value
        if op == "in":
            return column.in_(list(item.value))
        if op == "gte":
            return column >= item.value
        if op == "lte":
            return column <= item.value
        if op == "gt":
            return column > item.value
        if op == "lt":
            return column < item.value
        if op == "ilike":
            return column.ilike(f"%{escape_like(str(item.value))}%", escape="\\")
        return column.is_(None) if item.value else column.is_not(None)

    @staticmethod
    def _column(model, name: str):
        column = getattr(model, name, None)
        if column is None or not hasattr(column, "property"):
            raise ValidationError(f"Unknown field '{name}' on {model.__tablename__}")
        return column


def get_store() -> RecordStore:
    """FastAPI dependency returning the shared record store."""
    return RecordStore(AsyncSessionLocal)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally (escape char `\\`)."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
