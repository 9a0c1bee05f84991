"""
auth/gate.py -- The authorization gate run before every API handler.

Decision procedure for one request (path, method, cookies, headers):

  1. Out of scope (path outside the API prefix)  -> not checked here.
  2. (path, method) in the bypass set            -> allow, no identity.
  3. Credential lookup: the session cookie first; if absent, the
     Authorization header "Bearer <token>" (split on the space, second part).
  4. No credential                               -> AuthorizationError.
  5. decode_access_token() verifies signature and expiry; any failure
                                                  -> AuthorizationError.
  6. Otherwise                                   -> allow, decoded identity.

check_request() is framework-free so it can be unit-tested with plain dicts.
api/main.py wraps it in an HTTP middleware that answers 403 on
AuthorizationError and stores the identity on request.state.auth_user;
web/routes.py reuses it and redirects to /login instead.

GateConfig is frozen and built once at import time from Settings. Nothing
mutates it while requests are being served.

Layer rule: no imports from api/, web/ or inventory/.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from auth.tokens import decode_access_token
from core.config import Settings
from core.errors import AuthorizationError

# Key on request.state where downstream handlers find the decoded identity.
AUTH_USER_KEY = "auth_user"

API_PREFIX = "/api/"
LOGIN_PATH = "/api/v1/users/login"
HEALTH_PATH = "/api/v1/health"

DEFAULT_BYPASS: frozenset[tuple[str, str]] = frozenset(
    {
        (LOGIN_PATH, "POST"),
        (HEALTH_PATH, "GET"),
    }
)


@dataclass(frozen=True)
class GateConfig:
    cookie_name: str
    bypass: frozenset[tuple[str, str]] = DEFAULT_BYPASS
    scope_prefix: str = API_PREFIX

    def applies_to(self, path: str) -> bool:
        return path.startswith(self.scope_prefix)

    def is_exempt(self, path: str, method: str) -> bool:
        return (path, method.upper()) in self.bypass


def build_gate_config(settings: Settings) -> GateConfig:
    return GateConfig(cookie_name=settings.auth_cookie_name)


def extract_credential(cookies: Mapping[str, str], headers: Mapping[str, str], cookie_name: str) -> str | None:
    """Return the raw token from the cookie, else from the Authorization header."""
    token = cookies.get(cookie_name)
    if token:
        return token
    auth_header = headers.get("authorization")
    if not auth_header:
        return None
    parts = auth_header.split(" ")
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1]


def check_request(
    path: str,
    method: str,
    cookies: Mapping[str, str],
    headers: Mapping[str, str],
    config: GateConfig,
) -> dict | None:
    """Run the gate for one request.

    Returns the decoded identity payload, or None for an exempt route.
    Raises AuthorizationError when the request must be rejected.
    """
    if config.is_exempt(path, method):
        return None
    token = extract_credential(cookies, headers, config.cookie_name)
    if not token:
        raise AuthorizationError("missing_credential")
    return decode_access_token(token)
