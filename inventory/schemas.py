"""
inventory/schemas.py -- Validation schemas and mutation flows for cars and customers.

Each schema is the full rule set for one record type. pydantic collects every
violation in a single pass, so a form with three bad fields gets three
messages back at once.

Date fields are pre-normalized by core.mutation.coerce_date before the schema
sees them; the schema only checks type and range. Upper bounds that depend on
"now" (current year, today) are evaluated per validation, not at import.
"""

import re
from datetime import date
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

from core.fields import Email, UpperStr, check_date_range
from core.mutation import MutationFlow, coerce_date
from inventory.models import Car, Customer
from inventory.store import InventoryStore

MIN_YEAR_MANUFACTURE = 1960
MIN_SELLING_DATE = date(2020, 3, 20)
MIN_BIRTH_DATE = date(1900, 1, 1)

_CPF_RE = re.compile(r"^\d{3}\.\d{3}\.\d{3}-\d{2}$")
# Second group allows a leading space for 8-digit landlines: "(11) 3333-4444" -> "(11)  3333-4444".
_PHONE_RE = re.compile(r"^\(\d{2}\) [\d ]\d{4}-\d{4}$")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class CarColor(str, Enum):
    AMARELO = "AMARELO"
    AZUL = "AZUL"
    BRANCO = "BRANCO"
    CINZA = "CINZA"
    DOURADO = "DOURADO"
    LARANJA = "LARANJA"
    MARROM = "MARROM"
    PRATA = "PRATA"
    PRETO = "PRETO"
    ROSA = "ROSA"
    ROXO = "ROXO"
    VERDE = "VERDE"
    VERMELHO = "VERMELHO"


class StateCode(str, Enum):
    DF = "DF"
    ES = "ES"
    GO = "GO"
    MS = "MS"
    MG = "MG"
    PR = "PR"
    RJ = "RJ"
    SP = "SP"


# ---------------------------------------------------------------------------
# Car
# ---------------------------------------------------------------------------


class CarPayload(BaseModel):
    # No model-wide stripping: plates are checked exactly as sent.
    model_config = ConfigDict(extra="forbid")

    brand: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=25)]
    model: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=25)]
    color: UpperStr
    year_manufacture: int
    imported: bool
    plates: str
    selling_date: Optional[date] = None
    selling_price: float = Field(ge=5000, le=5_000_000)

    @field_validator("color")
    @classmethod
    def color_is_known(cls, value: str) -> str:
        if value not in CarColor.__members__:
            raise ValueError("Invalid color option.")
        return value

    @field_validator("year_manufacture")
    @classmethod
    def year_in_range(cls, value: int) -> int:
        if value < MIN_YEAR_MANUFACTURE:
            raise ValueError(f"Year of manufacture cannot be earlier than {MIN_YEAR_MANUFACTURE}.")
        if value > date.today().year:
            raise ValueError("Year of manufacture cannot be later than the current year.")
        return value

    @field_validator("plates")
    @classmethod
    def plates_length(cls, value: str) -> str:
        if len(value) != 8:
            raise ValueError("Plates must have exactly 8 characters.")
        return value

    @field_validator("selling_date")
    @classmethod
    def selling_date_in_range(cls, value: Optional[date]) -> Optional[date]:
        return check_date_range(value, MIN_SELLING_DATE, date.today(), "Selling date")


# ---------------------------------------------------------------------------
# Customer
# ---------------------------------------------------------------------------


class CustomerPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str = Field(min_length=5, max_length=50)
    ident_document: str
    birth_date: date
    street_name: str = Field(min_length=1, max_length=40)
    house_number: str = Field(min_length=1, max_length=10)
    complements: Optional[str] = Field(default=None, max_length=20)
    district: str = Field(min_length=1, max_length=25)
    municipality: str = Field(min_length=1, max_length=40)
    state: UpperStr
    phone: str
    email: Email

    @field_validator("ident_document")
    @classmethod
    def cpf_format(cls, value: str) -> str:
        if not _CPF_RE.match(value):
            raise ValueError("CPF must follow the format 999.999.999-99.")
        return value

    @field_validator("birth_date")
    @classmethod
    def birth_date_in_range(cls, value: date) -> date:
        return check_date_range(value, MIN_BIRTH_DATE, date.today(), "Birth date")

    @field_validator("complements")
    @classmethod
    def blank_complements(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @field_validator("state")
    @classmethod
    def state_is_known(cls, value: str) -> str:
        if value not in StateCode.__members__:
            raise ValueError("Invalid state (UF).")
        return value

    @field_validator("phone")
    @classmethod
    def phone_format(cls, value: str) -> str:
        if not _PHONE_RE.match(value):
            raise ValueError("Phone must follow the format (99) 99999-9999.")
        return value


# ---------------------------------------------------------------------------
# Flows
# ---------------------------------------------------------------------------


def build_car_flow(store: InventoryStore) -> MutationFlow[Car]:
    return MutationFlow("car", CarPayload, store.cars, normalizers={"selling_date": coerce_date})


def build_customer_flow(store: InventoryStore) -> MutationFlow[Customer]:
    return MutationFlow("customer", CustomerPayload, store.customers, normalizers={"birth_date": coerce_date})
