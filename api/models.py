"""
API request and response models for CarStore REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in inventory/models.py and
auth/models.py, which own the internal domain representation, and from the
validation schemas the mutation flow runs. Route handlers map between them.

Sensitive fields: UserResponse and MeResponse have no password field, so a
hash can never be serialized even if a handler passes a full User through.
"""

from datetime import date
from typing import Annotated, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, model_validator

from auth.models import User
from inventory.models import Car, Customer

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class FieldError(BaseModel):
    """One schema violation: JSON path to the field and a readable message."""

    model_config = ConfigDict(frozen=True)

    path: list[Union[str, int]]
    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None
    fields: Optional[list[FieldError]] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str


# ---------------------------------------------------------------------------
# Cars and customers
# ---------------------------------------------------------------------------


class CarResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    brand: str
    model: str
    color: str
    year_manufacture: int
    imported: bool
    plates: str
    selling_date: Optional[date]
    selling_price: float

    @classmethod
    def from_car(cls, car: Car) -> "CarResponse":
        return cls(
            id=car.id,
            brand=car.brand,
            model=car.model,
            color=car.color,
            year_manufacture=car.year_manufacture,
            imported=car.imported,
            plates=car.plates,
            selling_date=car.selling_date,
            selling_price=car.selling_price,
        )


class CustomerResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    ident_document: str
    birth_date: date
    street_name: str
    house_number: str
    complements: Optional[str]
    district: str
    municipality: str
    state: str
    phone: str
    email: str

    @classmethod
    def from_customer(cls, customer: Customer) -> "CustomerResponse":
        return cls(
            id=customer.id,
            name=customer.name,
            ident_document=customer.ident_document,
            birth_date=customer.birth_date,
            street_name=customer.street_name,
            house_number=customer.house_number,
            complements=customer.complements,
            district=customer.district,
            municipality=customer.municipality,
            state=customer.state,
            phone=customer.phone,
            email=customer.email,
        )


# ---------------------------------------------------------------------------
# Users and sessions
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """A user as returned to clients. There is deliberately no password field."""

    model_config = ConfigDict(frozen=True)

    id: int
    fullname: str
    username: str
    email: str
    is_admin: bool

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            fullname=user.fullname,
            username=user.username,
            email=user.email,
            is_admin=user.is_admin,
        )


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/users/login. Identify by username OR email."""

    # Identifiers are trimmed; the password is compared exactly as sent.
    username: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=20)]] = None
    email: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=100)]] = None
    password: str = Field(min_length=1, max_length=255)

    @model_validator(mode="after")
    def username_or_email(self) -> "LoginRequest":
        if not self.username and not self.email:
            raise ValueError("Provide a username or an e-mail.")
        return self


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: UserResponse
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class MeResponse(BaseModel):
    """Identity claims attached to the request by the gate."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str
    fullname: str
    email: str
    is_admin: bool

    @classmethod
    def from_claims(cls, claims: dict) -> "MeResponse":
        return cls(
            user_id=claims["user_id"],
            username=claims["sub"],
            fullname=claims.get("fullname", ""),
            email=claims.get("email", ""),
            is_admin=bool(claims.get("is_admin", False)),
        )
