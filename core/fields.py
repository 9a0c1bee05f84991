"""
core/fields.py -- Reusable pydantic field types for record schemas.

Annotated types keep the schema classes in inventory/schemas.py and
auth/schemas.py declarative: each field reads as "type + rule", and the
error message a form shows under an input is defined once here.
"""

from __future__ import annotations

from datetime import date
from typing import Annotated

from pydantic import BeforeValidator, EmailStr, Field


def _upper(value):
    return value.strip().upper() if isinstance(value, str) else value


# Syntax is checked by email-validator; the domain part comes back lower-cased.
Email = Annotated[EmailStr, Field(max_length=100)]

# Enum-like strings compared case-insensitively: "azul" is stored as "AZUL".
UpperStr = Annotated[str, BeforeValidator(_upper)]


def check_date_range(value: date | None, minimum: date, maximum: date, label: str) -> date | None:
    """Bound a date between a fixed minimum and a maximum computed by the caller.

    Callers pass date.today() as maximum at validation time, so a long-running
    process never validates against the day it started.
    """
    if value is None:
        return value
    if value < minimum:
        raise ValueError(f"{label} cannot be earlier than {minimum.strftime('%d/%m/%Y')}.")
    if value > maximum:
        raise ValueError(f"{label} cannot be later than {maximum.strftime('%d/%m/%Y')}.")
    return value
