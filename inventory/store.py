"""
inventory/store.py -- SQLAlchemy-backed persistence for cars and customers.

Uses SQLAlchemy Core (not ORM) so the dataclasses in inventory/models.py
remain the authoritative domain representation. Swapping SQLite for
PostgreSQL is a connection string change, not a rewrite.

Pattern: Repository + Data Mapper. InventoryStore owns the engine and one
TableRepository per table (store.cars, store.customers). The _row_to_*
functions are the mappers. Route handlers never touch SQL directly.

Usage:
    store = InventoryStore()                                # DATABASE_URL
    store = InventoryStore("postgresql://user:pw@host/db")  # explicit
    car_id = store.cars.create({...})
    cars = store.cars.list()          # ordered by brand
    customers = store.customers.list()  # ordered by name
    store.close()
"""

from typing import Optional

from sqlalchemy import Boolean, Column, Date, Float, Integer, MetaData, String, Table

from core.config import get_settings
from core.repository import TableRepository, create_store_engine
from inventory.models import Car, Customer

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_cars = Table(
    "cars",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("brand", String(25), nullable=False),
    Column("model", String(25), nullable=False),
    Column("color", String(20), nullable=False),
    Column("year_manufacture", Integer, nullable=False),
    Column("imported", Boolean, nullable=False),
    Column("plates", String(8), nullable=False),
    Column("selling_date", Date),
    Column("selling_price", Float, nullable=False),
)

_customers = Table(
    "customers",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(50), nullable=False),
    Column("ident_document", String(14), nullable=False),
    Column("birth_date", Date, nullable=False),
    Column("street_name", String(40), nullable=False),
    Column("house_number", String(10), nullable=False),
    Column("complements", String(20)),
    Column("district", String(25), nullable=False),
    Column("municipality", String(40), nullable=False),
    Column("state", String(2), nullable=False),
    Column("phone", String(15), nullable=False),
    Column("email", String(100), nullable=False),
)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class InventoryStore:
    """Engine owner exposing one repository per inventory table."""

    def __init__(self, db_url: Optional[str] = None) -> None:
        self.engine = create_store_engine(db_url or get_settings().database_url)
        metadata.create_all(self.engine)
        self.cars: TableRepository[Car] = TableRepository(self.engine, _cars, _row_to_car, order_by=_cars.c.brand)
        self.customers: TableRepository[Customer] = TableRepository(
            self.engine, _customers, _row_to_customer, order_by=_customers.c.name
        )

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_car(row) -> Car:
    return Car(
        id=row.id,
        brand=row.brand,
        model=row.model,
        color=row.color,
        year_manufacture=row.year_manufacture,
        imported=bool(row.imported),
        plates=row.plates,
        selling_date=row.selling_date,
        selling_price=row.selling_price,
    )


def _row_to_customer(row) -> Customer:
    return Customer(
        id=row.id,
        name=row.name,
        ident_document=row.ident_document,
        birth_date=row.birth_date,
        street_name=row.street_name,
        house_number=row.house_number,
        complements=row.complements,
        district=row.district,
        municipality=row.municipality,
        state=row.state,
        phone=row.phone,
        email=row.email,
    )
