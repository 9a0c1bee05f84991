"""
auth/schemas.py -- Validation schema and mutation flow for users.

The "password" field is normalized to a bcrypt hash BEFORE validation (see
auth.tokens.hash_plaintext_password), so UserPayload validates the hash, not
the plaintext. A blank or over-long plaintext is left untouched by the
normalizer and fails the hash check here.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import User
from auth.store import UserStore
from auth.tokens import hash_plaintext_password, is_password_hash
from core.fields import Email
from core.mutation import MutationFlow


class UserPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    fullname: str = Field(min_length=1, max_length=100)
    username: str = Field(min_length=1, max_length=20)
    email: Email
    password: str
    is_admin: bool = False

    @field_validator("password")
    @classmethod
    def password_is_hashed(cls, value: str) -> str:
        if not is_password_hash(value):
            raise ValueError("Password must be between 1 and 72 bytes long.")
        return value


def build_user_flow(store: UserStore) -> MutationFlow[User]:
    return MutationFlow(
        "user",
        UserPayload,
        store,
        normalizers={"password": hash_plaintext_password},
    )
