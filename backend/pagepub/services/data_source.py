# pagepub/services/data_source.py
import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol

from sqlalchemy import MetaData, Table, select
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from pagepub.domain.errors import DataSourceError, UnknownTableError
from pagepub.extensions import db

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class DataSource(Protocol):
    def fetch(
        self,
        table: str,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        user_id: Optional[str] = None,
        own_entries_only: bool = False,
    ) -> List[Record]:
        """Rows of `table` in insertion order."""
        ...


def _prefixed(table: str, prefix: str) -> str:
    if not table:
        raise UnknownTableError("Data config names no table")
    return table if table.startswith(prefix) else f"{prefix}{table}"


class SqlTableDataSource:
    """
    Reads business records from tables of the application database.

    Only tables named with the configured prefix are reachable; a config
    naming `orders` reads `data_orders`. Rows carrying a `user_id` column
    can be restricted to the caller's own entries.
    """

    OWNER_COLUMN = "user_id"

    def __init__(self, prefix: str = "data_"):
        self.prefix = prefix

    def _table(self, name: str) -> Table:
        physical = _prefixed(name, self.prefix)
        try:
            # Reflected per call: tables can disappear after a version was stored
            return Table(physical, MetaData(), autoload_with=db.session.connection())
        except NoSuchTableError:
            raise UnknownTableError(f"Table {physical} does not exist")

    def fetch(
        self,
        table: str,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        user_id: Optional[str] = None,
        own_entries_only: bool = False,
    ) -> List[Record]:
        source = self._table(table)
        query = select(source)

        for column_name, value in (filters or {}).items():
            if column_name not in source.c:
                raise DataSourceError(f"Unknown filter column {column_name} on {source.name}")
            query = query.where(source.c[column_name] == value)

        if own_entries_only and self.OWNER_COLUMN in source.c:
            query = query.where(source.c[self.OWNER_COLUMN] == user_id)

        query = query.order_by(*source.primary_key.columns)

        try:
            rows = db.session.execute(query).mappings().all()
        except SQLAlchemyError as exc:
            raise DataSourceError(f"Reading {source.name} failed: {exc}") from exc

        return [dict(row) for row in rows]


class InMemoryDataSource:
    """Dict-backed data source for tests and local tooling."""

    def __init__(self, tables: Optional[Dict[str, List[Record]]] = None, prefix: str = "data_"):
        self.prefix = prefix
        self.tables: Dict[str, List[Record]] = {}
        for name, rows in (tables or {}).items():
            self.tables[_prefixed(name, prefix)] = list(rows)

    def add(self, table: str, record: Record) -> None:
        self.tables.setdefault(_prefixed(table, self.prefix), []).append(dict(record))

    def drop(self, table: str) -> None:
        self.tables.pop(_prefixed(table, self.prefix), None)

    def fetch(
        self,
        table: str,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        user_id: Optional[str] = None,
        own_entries_only: bool = False,
    ) -> List[Record]:
        physical = _prefixed(table, self.prefix)
        if physical not in self.tables:
            raise UnknownTableError(f"Table {physical} does not exist")

        rows = self.tables[physical]
        if filters:
            rows = [r for r in rows if all(r.get(k) == v for k, v in filters.items())]
        if own_entries_only:
            rows = [r for r in rows if "user_id" not in r or r["user_id"] == user_id]
        return [dict(r) for r in rows]
