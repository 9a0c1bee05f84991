"""
inventory/models.py -- Domain dataclasses for the dealership inventory.

These are pure data containers with zero logic. Validation rules live in
inventory/schemas.py; persistence in inventory/store.py.

id is None before the record is written to the database.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass
class Car:
    brand: str
    model: str
    color: str  # upper-case colour name, e.g. "AZUL"
    year_manufacture: int
    imported: bool
    plates: str  # exactly 8 characters, e.g. "ABC-1D23"
    selling_price: float
    selling_date: Optional[date] = None  # None while the car is unsold
    id: Optional[int] = None


@dataclass
class Customer:
    name: str
    ident_document: str  # CPF, "###.###.###-##"
    birth_date: date
    street_name: str
    house_number: str
    district: str
    municipality: str
    state: str  # two-letter UF code
    phone: str  # "(##) #####-####"
    email: str
    complements: Optional[str] = None
    id: Optional[int] = None
