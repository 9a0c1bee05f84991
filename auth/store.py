"""
auth/store.py -- SQLAlchemy Core persistence layer for users.

Pattern: Repository + Data Mapper (same as inventory/store.py).
UserStore is the repository; _row_to_user is the mapper. Route and
dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  username and email are UNIQUE -- login looks a user up by either one.

Layer rule: no imports from api/, web/ or inventory/.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text, or_

from auth.models import User
from core.config import get_settings
from core.repository import TableRepository, create_store_engine

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("fullname", String(100), nullable=False),
    Column("username", String(20), nullable=False, unique=True),
    Column("email", String(100), nullable=False, unique=True),
    Column("password", Text, nullable=False),  # bcrypt hash
    Column("is_admin", Boolean, nullable=False, server_default="0"),
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore(TableRepository[User]):
    """Repository for User entities.

    Usage:
        store = UserStore()
        store.create({"fullname": "Ana", "username": "ana", "email": "ana@x.io",
                      "password": hash_password("secret"), "is_admin": True})
        user = store.get_by_login(username="ana")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        engine = create_store_engine(db_url or get_settings().database_url)
        _metadata.create_all(engine)
        super().__init__(engine, _users, _row_to_user, order_by=_users.c.fullname)

    def get_by_login(self, username: str | None = None, email: str | None = None) -> User | None:
        """Find the user whose username OR email matches.

        Either argument may be None; a None argument never matches anything,
        so a body carrying only "email" cannot hit a user with a NULL username.
        """
        clauses = []
        if username:
            clauses.append(_users.c.username == username)
        if email:
            clauses.append(_users.c.email == email)
        if not clauses:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(or_(*clauses)).order_by(_users.c.id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def has_users(self) -> bool:
        """Return True if at least one user exists. Used by the CLI bootstrap."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().limit(1)).fetchone()
        return row is not None

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        fullname=row.fullname,
        username=row.username,
        email=row.email,
        password=row.password,
        is_admin=bool(row.is_admin),
    )
