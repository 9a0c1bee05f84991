"""
auth/dependencies.py -- FastAPI Depends() helpers for the authenticated identity.

The gate middleware in api/main.py has already verified the session token by
the time a handler runs and stored the decoded payload on
request.state.auth_user. These helpers read it back.

get_auth_user() is for API routes behind the gate; reaching it without an
identity means the route was wrongly added to the bypass set, so it raises
AuthorizationError rather than returning None.

try_get_auth_user() is the soft variant for web routes, which live outside
the gate's scope: it runs the same credential lookup and verification and
returns None on any failure.

Layer rule: no imports from web/, api/ or inventory/.
"""

from __future__ import annotations

from fastapi import Request

from auth.gate import AUTH_USER_KEY, GateConfig, extract_credential
from auth.tokens import decode_access_token
from core.errors import AuthorizationError


def get_auth_user(request: Request) -> dict:
    """Require the identity attached by the gate.

    Use as a FastAPI dependency:
        @router.get("/users/me")
        def me(auth_user: dict = Depends(get_auth_user)): ...
    """
    identity = getattr(request.state, AUTH_USER_KEY, None)
    if identity is None:
        raise AuthorizationError("no_identity_on_request")
    return identity


def try_get_auth_user(request: Request) -> dict | None:
    """Verify the request's credential without raising. Returns the payload or None."""
    config: GateConfig = request.app.state.gate_config
    token = extract_credential(request.cookies, request.headers, config.cookie_name)
    if not token:
        return None
    try:
        return decode_access_token(token)
    except AuthorizationError:
        return None
