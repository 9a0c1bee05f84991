"""
auth/tokens.py -- JWT, password hashing and session cookie utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry the
       user identity (user_id, username as "sub", fullname, email, is_admin),
       iat and exp. The password hash is never part of the payload.
       decode_access_token() is a result-or-raise call: it returns the payload
       or raises AuthorizationError -- the gate turns that into a 403.

  Passwords: bcrypt with a fixed cost factor (BCRYPT_ROUNDS, default 12).
       hash_plaintext_password() is the normalizer the user mutation flow runs
       before validation, so only hashes are ever validated and stored.
       The _DUMMY_HASH constant enables timing equalization in
       authenticate_user() so response time does not reveal whether a
       username or e-mail exists.

  Cookie: httpOnly, samesite=lax, secure when SECURE_COOKIES=true. max_age is
       the token lifetime in seconds so cookie and token expire together.

Layer rule: no imports from api/, web/ or inventory/. Import from core/ is
allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from core.config import get_settings
from core.errors import AuthenticationError, AuthorizationError

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("carstore.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes; the user schema caps plaintext
    passwords well below that before they get here.
    """
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def is_password_hash(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(("$2a$", "$2b$", "$2y$")) and len(value) == 60


def hash_plaintext_password(value: Any) -> Any:
    """Normalizer for the user "password" field.

    Non-empty plaintext strings up to 72 bytes are hashed. Anything else
    (blank, too long, not a string) is passed through unchanged so schema
    validation rejects it with a field-level message. Clients cannot store a
    hash of their choosing: whatever they send is treated as plaintext.
    """
    if not isinstance(value, str) or not value or len(value.encode("utf-8")) > 72:
        return value
    return hash_password(value)


# Timing equalization dummy hash. Computed once at module load so the first
# login attempt is not measurably slower than subsequent ones.
_DUMMY_HASH: str = hash_password("carstore_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def token_lifetime(expire_seconds: int = 0) -> int:
    return expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds


def create_access_token(user: User, expire_seconds: int = 0) -> str:
    """Encode a signed JWT with the user's identity claims.

    Args:
        user:           Stored user (must have an id).
        expire_seconds: Token lifetime. 0 (default) uses TOKEN_EXPIRE_SECONDS.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.username,
        **user.identity(),
        "iat": now,
        "exp": now + timedelta(seconds=token_lifetime(expire_seconds)),
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and expiry and return the payload.

    Raises AuthorizationError on any failure. The reason string is for the
    server log only; clients always see the same generic 403.
    """
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except ExpiredSignatureError:
        raise AuthorizationError("expired_token") from None
    except JWTError:
        raise AuthorizationError("invalid_token") from None
    if "user_id" not in payload or "sub" not in payload:
        raise AuthorizationError("incomplete_token")
    return payload


# ---------------------------------------------------------------------------
# User authentication (constant-time)
# ---------------------------------------------------------------------------


def authenticate_user(
    store: UserStore,
    password: str,
    username: str | None = None,
    email: str | None = None,
) -> User:
    """Authenticate a username-or-email / password login.

    Always runs bcrypt whether or not the user exists, so an attacker cannot
    enumerate accounts by timing the response.

    Returns the User on success, raises AuthenticationError otherwise.
    """
    user = store.get_by_login(username=username, email=email)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        logger.info("Login failed: unknown user (username=%r, email=%r)", username, email)
        raise AuthenticationError()
    if not verify_password(password, user.password):
        logger.info("Login failed: wrong password for user %d", user.id)
        raise AuthenticationError()
    return user


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, expire_seconds: int = 0) -> None:
    """Write the JWT as an httpOnly cookie whose max_age matches the token."""
    response.set_cookie(
        _settings.auth_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        path="/",
        max_age=token_lifetime(expire_seconds),
    )


def clear_auth_cookie(response) -> None:
    response.delete_cookie(_settings.auth_cookie_name, path="/")
