"""
Table/procedure level access to the persistent store.

Repositories only ever talk to a `RemoteStore`: rows go in and come out as
plain dicts keyed by column name, and multi-statement writes go through
named procedures so each one commits or fails as a unit.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, Sequence

from sqlalchemy import Table, delete, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from amity.core.database import AsyncSessionLocal, Base
from amity.store.procedures import PROCEDURES


@dataclass(frozen=True)
class Filter:
    column: str
    op: str
    value: Any


@dataclass(frozen=True)
class Order:
    column: str
    descending: bool = False


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)


def in_(column: str, values: Sequence[Any]) -> Filter:
    return Filter(column, "in", list(values))


def asc(column: str) -> Order:
    return Order(column)


def desc(column: str) -> Order:
    return Order(column, descending=True)


class RemoteStore(Protocol):
    async def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order: Sequence[Order] = (),
        limit: int | None = None,
    ) -> list[dict]: ...

    async def insert(self, table: str, rows: list[dict]) -> list[dict]: ...

    async def upsert(self, table: str, rows: list[dict], conflict: Sequence[str]) -> list[dict]: ...

    async def update(self, table: str, filters: Sequence[Filter], values: dict) -> list[dict]: ...

    async def delete(self, table: str, filters: Sequence[Filter]) -> list[dict]: ...

    async def rpc(self, name: str, params: dict) -> Any: ...


class SqlRemoteStore:
    """RemoteStore over the application's SQLAlchemy tables. One transaction per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal):
        self._session_factory = session_factory

    @staticmethod
    def _table(name: str) -> Table:
        table = Base.metadata.tables.get(name)
        if table is None:
            raise ValueError(f"Unknown table: {name}")
        return table

    @staticmethod
    def _where(table: Table, filters: Sequence[Filter]) -> list:
        clauses = []
        for item in filters:
            column = table.c[item.column]
            if item.op == "eq":
                clauses.append(column.is_(None) if item.value is None else column == item.value)
            elif item.op == "in":
                clauses.append(column.in_(item.value))
            else:
                raise ValueError(f"Unsupported filter op: {item.op}")
        return clauses

    async def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order: Sequence[Order] = (),
        limit: int | None = None,
    ) -> list[dict]:
        target = self._table(table)
        stmt = select(target).where(*self._where(target, filters))
        for item in order:
            column = target.c[item.column]
            stmt = stmt.order_by(column.desc() if item.descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [dict(row) for row in result.mappings().all()]

    async def insert(self, table: str, rows: list[dict]) -> list[dict]:
        if not rows:
            return []
        target = self._table(table)
        stmt = insert(target).values(rows).returning(*target.c)
        return await self._write(stmt)

    async def upsert(self, table: str, rows: list[dict], conflict: Sequence[str]) -> list[dict]:
        if not rows:
            return []
        target = self._table(table)
        async with self._session_factory() as session, session.begin():
            dialect = session.bind.dialect.name
            if dialect == "postgresql":
                stmt = postgresql.insert(target).values(rows)
            elif dialect == "sqlite":
                stmt = sqlite.insert(target).values(rows)
            else:
                raise ValueError(f"Upsert is not supported on {dialect}")

            changed = {key for row in rows for key in row if key not in conflict}
            if changed:
                stmt = stmt.on_conflict_do_update(
                    index_elements=list(conflict),
                    set_={key: stmt.excluded[key] for key in changed},
                )
            else:
                stmt = stmt.on_conflict_do_nothing(index_elements=list(conflict))
            result = await session.execute(stmt.returning(*target.c))
            return [dict(row) for row in result.mappings().all()]

    async def update(self, table: str, filters: Sequence[Filter], values: dict) -> list[dict]:
        target = self._table(table)
        stmt = update(target).where(*self._where(target, filters)).values(values).returning(*target.c)
        return await self._write(stmt)

    async def delete(self, table: str, filters: Sequence[Filter]) -> list[dict]:
        target = self._table(table)
        stmt = delete(target).where(*self._where(target, filters)).returning(*target.c)
        return await self._write(stmt)

    async def rpc(self, name: str, params: dict) -> Any:
        procedure = PROCEDURES.get(name)
        if procedure is None:
            raise ValueError(f"Unknown procedure: {name}")
        async with self._session_factory() as session, session.begin():
            return await procedure(session, **params)

    async def _write(self, stmt) -> list[dict]:
        async with self._session_factory() as session, session.begin():
            result = await session.execute(stmt)
            return [dict(row) for row in result.mappings().all()]
