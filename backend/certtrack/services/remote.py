"""
Remote relational store interface and its SQLAlchemy implementation.

Stores talk to the relational store only through `RemoteStore`:

    rows = await remote.select(
        "saos",
        Where.by(user_id=user.id).matching(title=query, content=query),
        order=Order("created_at", descending=True),
        embed=("sao_skills",),
    )

Filters are equality terms (always including user_id where the table has
one) plus an optional set of case-insensitive substring terms OR'ed
together. Rows come back as plain dicts; embedded child tables appear as a
list under the child table's name.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy import Table, and_, delete, func, insert, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from certtrack.db import models  # noqa: F401 - Import models to register them
from certtrack.db.base import Base
from certtrack.errors import RemoteError

logger = logging.getLogger(__name__)

Row = dict[str, Any]

# child table -> (parent table, foreign key column on the child)
EMBEDDABLE: dict[str, tuple[str, str]] = {
    "sao_skills": ("saos", "sao_id"),
}


@dataclass(frozen=True)
class Where:
    """Equality terms AND'ed together, plus substring terms OR'ed together."""

    eq: Mapping[str, Any] = field(default_factory=dict)
    ilike_any: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def by(cls, **eq: Any) -> "Where":
        return cls(eq=eq)

    def matching(self, **substrings: str) -> "Where":
        """Add case-insensitive substring terms; a row matches if any of them does."""
        return Where(eq=self.eq, ilike_any={**self.ilike_any, **substrings})

    def matches(self, row: Mapping[str, Any]) -> bool:
        """Evaluate the filter against an in-memory row."""
        if any(row.get(column) != value for column, value in self.eq.items()):
            return False
        if not self.ilike_any:
            return True
        return any(
            needle.lower() in str(row.get(column) or "").lower()
            for column, needle in self.ilike_any.items()
        )


@dataclass(frozen=True)
class Order:
    column: str
    descending: bool = False


class RemoteStore(Protocol):
    """Generic relational store used by every remote-backed store."""

    async def select(
        self,
        table: str,
        where: Where,
        *,
        order: Order | None = None,
        limit: int | None = None,
        embed: Sequence[str] = (),
    ) -> list[Row]: ...

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> list[Row]: ...

    async def update(self, table: str, values: Mapping[str, Any], where: Where) -> list[Row]: ...

    async def upsert(self, table: str, row: Mapping[str, Any], conflict_key: Sequence[str]) -> Row: ...

    async def delete(self, table: str, where: Where) -> int: ...


def _insert_for(dialect_name: str):
    """Dialect insert construct supporting ON CONFLICT."""
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as dialect_insert
    elif dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as dialect_insert
    else:
        raise RemoteError(f"Upsert is not supported on {dialect_name}")
    return dialect_insert


class SqlRemoteStore:
    """RemoteStore backed by an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    def _table(self, name: str) -> Table:
        try:
            return Base.metadata.tables[name]
        except KeyError:
            raise RemoteError(f"Unknown table: {name}") from None

    def _clause(self, table: Table, where: Where):
        clauses = [table.c[column] == value for column, value in where.eq.items()]
        if where.ilike_any:
            clauses.append(
                or_(
                    *(
                        table.c[column].icontains(needle, autoescape=True)
                        for column, needle in where.ilike_any.items()
                    )
                )
            )
        return and_(*clauses) if clauses else None

    async def select(
        self,
        table: str,
        where: Where,
        *,
        order: Order | None = None,
        limit: int | None = None,
        embed: Sequence[str] = (),
    ) -> list[Row]:
        source = self._table(table)
        query = select(source)
        clause = self._clause(source, where)
        if clause is not None:
            query = query.where(clause)
        if order is not None:
            column = source.c[order.column]
            query = query.order_by(column.desc() if order.descending else column.asc())
        if limit is not None:
            query = query.limit(limit)

        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                rows = [dict(row._mapping) for row in result]
                for child in embed:
                    await self._embed(session, table, child, rows)
        except SQLAlchemyError as e:
            logger.error("Select on %s failed: %s", table, e, exc_info=True)
            raise RemoteError(f"Failed to query {table}") from e
        return rows

    async def _embed(self, session: AsyncSession, parent: str, child: str, rows: list[Row]) -> None:
        """Attach child rows to their parents under the child table's name."""
        relation = EMBEDDABLE.get(child)
        if relation is None or relation[0] != parent:
            raise RemoteError(f"{child} cannot be embedded in {parent}")
        foreign_key = relation[1]

        for row in rows:
            row[child] = []
        if not rows:
            return

        by_parent = {row["id"]: row for row in rows}
        child_table = self._table(child)
        result = await session.execute(
            select(child_table).where(child_table.c[foreign_key].in_(list(by_parent)))
        )
        for child_row in result:
            mapping = dict(child_row._mapping)
            by_parent[mapping[foreign_key]][child].append(mapping)

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> list[Row]:
        if not rows:
            return []
        target = self._table(table)
        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(insert(target).returning(*target.c), [dict(r) for r in rows])
                return [dict(row._mapping) for row in result]
        except SQLAlchemyError as e:
            logger.error("Insert into %s failed: %s", table, e, exc_info=True)
            raise RemoteError(f"Failed to insert into {table}") from e

    async def update(self, table: str, values: Mapping[str, Any], where: Where) -> list[Row]:
        target = self._table(table)
        statement = update(target).values(**values).returning(*target.c)
        clause = self._clause(target, where)
        if clause is not None:
            statement = statement.where(clause)
        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(statement)
                return [dict(row._mapping) for row in result]
        except SQLAlchemyError as e:
            logger.error("Update of %s failed: %s", table, e, exc_info=True)
            raise RemoteError(f"Failed to update {table}") from e

    async def upsert(self, table: str, row: Mapping[str, Any], conflict_key: Sequence[str]) -> Row:
        target = self._table(table)
        try:
            async with self._session_factory() as session, session.begin():
                dialect_insert = _insert_for(session.bind.dialect.name)
                statement = dialect_insert(target).values(**row)
                changes = {
                    column: statement.excluded[column]
                    for column in row
                    if column not in conflict_key
                }
                if "updated_at" in target.c:
                    changes["updated_at"] = func.now()
                statement = statement.on_conflict_do_update(
                    index_elements=list(conflict_key),
                    set_=changes,
                ).returning(*target.c)
                result = await session.execute(statement)
                return dict(result.one()._mapping)
        except SQLAlchemyError as e:
            logger.error("Upsert into %s failed: %s", table, e, exc_info=True)
            raise RemoteError(f"Failed to upsert into {table}") from e

    async def delete(self, table: str, where: Where) -> int:
        target = self._table(table)
        statement = delete(target)
        clause = self._clause(target, where)
        if clause is not None:
            statement = statement.where(clause)
        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(statement)
                return result.rowcount or 0
        except SQLAlchemyError as e:
            logger.error("Delete from %s failed: %s", table, e, exc_info=True)
            raise RemoteError(f"Failed to delete from {table}") from e
