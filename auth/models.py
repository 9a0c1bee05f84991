"""
auth/models.py -- Domain dataclass for the user entity.

Pattern: Data class (pure data container, zero logic). Mirrors
inventory/models.py -- dataclasses own domain shape; stores and routes do the
work.

Layer rule: no imports from api/, web/ or inventory/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A person allowed to log in to CarStore.

    password holds the bcrypt hash, never plaintext. It is excluded from
    every response model and from the JWT payload.
    """

    fullname: str
    username: str
    email: str
    password: str
    is_admin: bool = False
    id: int | None = None

    def identity(self) -> dict:
        """Claims embedded in the session token and returned by /users/me."""
        return {
            "user_id": self.id,
            "fullname": self.fullname,
            "username": self.username,
            "email": self.email,
            "is_admin": self.is_admin,
        }
