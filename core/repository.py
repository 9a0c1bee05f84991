"""
core/repository.py -- Generic SQLAlchemy Core repository for flat record tables.

Pattern: Repository + Data Mapper. A TableRepository wraps one Table and one
row mapper (row -> domain dataclass). Every record type in CarStore is a flat
table keyed by an autoincrement integer id, so the five CRUD operations are
the same for all of them; entity-specific lookups (e.g. login by username or
e-mail) live in subclasses.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    engine = create_store_engine("sqlite:///carstore.db")
    repo = TableRepository(engine, _cars, _row_to_car, order_by=_cars.c.brand)
    car_id = repo.create({"brand": "Fiat", ...})
    repo.update(car_id, {...})     # False when car_id does not exist
    repo.delete(car_id)            # False when car_id does not exist
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, TypeVar

from sqlalchemy import Column, Table, create_engine, event
from sqlalchemy.engine import Engine

T = TypeVar("T")


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_store_engine(db_url: str) -> Engine:
    """Create an Engine with the SQLite tweaks every store needs.

    check_same_thread=False: FastAPI runs sync handlers in a thread pool, so
    one pooled connection may be used from several threads over its lifetime.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


class TableRepository(Generic[T]):
    """CRUD over a single table with an integer ``id`` primary key."""

    def __init__(
        self,
        engine: Engine,
        table: Table,
        mapper: Callable[[Any], T],
        order_by: Column,
    ) -> None:
        self.engine = engine
        self.table = table
        self._mapper = mapper
        self._order_by = order_by

    def create(self, values: dict) -> int:
        """Insert a row and return its assigned id.

        Raises sqlalchemy.exc.IntegrityError on a unique constraint violation.
        """
        with self.engine.connect() as conn:
            result = conn.execute(self.table.insert().values(**values))
            conn.commit()
            return result.inserted_primary_key[0]

    def get(self, record_id: int) -> T | None:
        with self.engine.connect() as conn:
            row = conn.execute(self.table.select().where(self.table.c.id == record_id)).fetchone()
        return self._mapper(row) if row is not None else None

    def list(self) -> list[T]:
        with self.engine.connect() as conn:
            rows = conn.execute(self.table.select().order_by(self._order_by, self.table.c.id)).fetchall()
        return [self._mapper(r) for r in rows]

    def update(self, record_id: int, values: dict) -> bool:
        """Overwrite the given columns. Returns False if record_id was not found."""
        with self.engine.connect() as conn:
            result = conn.execute(self.table.update().where(self.table.c.id == record_id).values(**values))
            conn.commit()
        return result.rowcount > 0

    def delete(self, record_id: int) -> bool:
        """Delete a row. Returns False if record_id was not found."""
        with self.engine.connect() as conn:
            result = conn.execute(self.table.delete().where(self.table.c.id == record_id))
            conn.commit()
        return result.rowcount > 0
