"""
tests/test_gate.py -- Unit tests for auth/gate.py.

check_request() is framework-free, so these tests call it with plain dicts
for cookies and headers. Header keys are lower-case, as Starlette presents
them.

Coverage:
  - Scope: only /api/ paths are in scope
  - Bypass: exact (path, method) match only
  - Credential lookup order: cookie first, then Authorization header
  - Rejections: missing credential, tampered, expired, incomplete token
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.gate import DEFAULT_BYPASS, GateConfig, check_request, extract_credential
from auth.models import User
from auth.tokens import create_access_token
from core.config import get_settings
from core.errors import AuthorizationError

COOKIE = "access_token"


@pytest.fixture
def config() -> GateConfig:
    return GateConfig(cookie_name=COOKIE)


@pytest.fixture
def token() -> str:
    user = User(fullname="Gate User", username="gate", email="gate@carstore.example.com", password="x", id=7)
    return create_access_token(user, expire_seconds=600)


class TestScopeAndBypass:
    def test_api_paths_in_scope(self, config: GateConfig) -> None:
        assert config.applies_to("/api/v1/cars")
        assert not config.applies_to("/cars")
        assert not config.applies_to("/login")

    def test_login_post_is_exempt(self, config: GateConfig) -> None:
        assert check_request("/api/v1/users/login", "POST", {}, {}, config) is None

    def test_health_get_is_exempt(self, config: GateConfig) -> None:
        assert check_request("/api/v1/health", "GET", {}, {}, config) is None

    def test_method_must_match_exactly(self, config: GateConfig) -> None:
        """GET on the login path is not in the bypass set."""
        with pytest.raises(AuthorizationError) as exc_info:
            check_request("/api/v1/users/login", "GET", {}, {}, config)
        assert exc_info.value.reason == "missing_credential"

    def test_path_must_match_exactly(self, config: GateConfig) -> None:
        with pytest.raises(AuthorizationError):
            check_request("/api/v1/users/login/", "POST", {}, {}, config)

    def test_default_bypass_is_immutable(self) -> None:
        assert isinstance(DEFAULT_BYPASS, frozenset)


class TestExtractCredential:
    def test_cookie_wins_over_header(self) -> None:
        token = extract_credential({COOKIE: "from-cookie"}, {"authorization": "Bearer from-header"}, COOKIE)
        assert token == "from-cookie"

    def test_header_fallback(self) -> None:
        assert extract_credential({}, {"authorization": "Bearer abc.def.ghi"}, COOKIE) == "abc.def.ghi"

    def test_header_without_space_yields_nothing(self) -> None:
        assert extract_credential({}, {"authorization": "abc.def.ghi"}, COOKIE) is None

    def test_nothing_present(self) -> None:
        assert extract_credential({}, {}, COOKIE) is None

    def test_empty_cookie_falls_back_to_header(self) -> None:
        assert extract_credential({COOKIE: ""}, {"authorization": "Bearer tok"}, COOKIE) == "tok"


class TestCheckRequest:
    def test_valid_cookie_returns_identity(self, config: GateConfig, token: str) -> None:
        identity = check_request("/api/v1/cars", "GET", {COOKIE: token}, {}, config)
        assert identity is not None
        assert identity["user_id"] == 7
        assert identity["sub"] == "gate"
        assert "password" not in identity

    def test_valid_header_returns_identity(self, config: GateConfig, token: str) -> None:
        identity = check_request("/api/v1/cars", "GET", {}, {"authorization": f"Bearer {token}"}, config)
        assert identity["email"] == "gate@carstore.example.com"

    def test_missing_credential(self, config: GateConfig) -> None:
        with pytest.raises(AuthorizationError) as exc_info:
            check_request("/api/v1/cars", "GET", {}, {}, config)
        assert exc_info.value.status_code == 403

    def test_tampered_token(self, config: GateConfig, token: str) -> None:
        tampered = token[:-4] + ("AAAA" if not token.endswith("AAAA") else "BBBB")
        with pytest.raises(AuthorizationError) as exc_info:
            check_request("/api/v1/cars", "GET", {COOKIE: tampered}, {}, config)
        assert exc_info.value.reason == "invalid_token"

    def test_token_signed_with_other_key(self, config: GateConfig) -> None:
        forged = jwt.encode({"sub": "gate", "user_id": 7}, "x" * 64, algorithm="HS256")
        with pytest.raises(AuthorizationError) as exc_info:
            check_request("/api/v1/cars", "GET", {COOKIE: forged}, {}, config)
        assert exc_info.value.reason == "invalid_token"

    def test_expired_token(self, config: GateConfig) -> None:
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        expired = jwt.encode(
            {"sub": "gate", "user_id": 7, "iat": past - timedelta(hours=1), "exp": past},
            get_settings().secret_key,
            algorithm="HS256",
        )
        with pytest.raises(AuthorizationError) as exc_info:
            check_request("/api/v1/cars", "GET", {COOKIE: expired}, {}, config)
        assert exc_info.value.reason == "expired_token"

    def test_token_without_identity(self, config: GateConfig) -> None:
        bare = jwt.encode({"sub": "gate"}, get_settings().secret_key, algorithm="HS256")
        with pytest.raises(AuthorizationError) as exc_info:
            check_request("/api/v1/cars", "GET", {COOKIE: bare}, {}, config)
        assert exc_info.value.reason == "incomplete_token"
