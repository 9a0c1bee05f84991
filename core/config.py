"""
core/config.py -- CarStore settings, read once from the environment.

Every environment variable the application understands is a field on
Settings. Other modules call get_settings() and never read os.environ.

  get_settings()  lru_cache singleton; the first call parses the environment
                  (and .env, when present), later calls return the same object.
  Field names     map to upper-case variables: database_url <- DATABASE_URL,
                  token_expire_seconds <- TOKEN_EXPIRE_SECONDS, ...
  List fields     (allowed_hosts, cors_origins) are given as JSON arrays,
                  e.g. ALLOWED_HOSTS='["cars.example.com"]'.

Startup checks (check_security_settings):
  SECRET_KEY signs every session token. Without DEBUG=true a missing key is a
  startup error; with DEBUG=true a throwaway key is generated and every
  session dies on restart. Keys under 32 characters are refused either way.
  BCRYPT_ROUNDS outside bcrypt's 4..31 range is refused.

Token and cookie lifetimes share one value, token_expire_seconds, in seconds.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
auth/ or inventory/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("carstore.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'carstore.db'}"

_MIN_SECRET_KEY_LENGTH = 32


class Settings(BaseSettings):
    """Runtime configuration. Every field has a default usable in development."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- runtime ---------------------------------------------------------
    debug: bool = False
    database_url: str = _DEFAULT_DB_URL

    # --- sessions --------------------------------------------------------
    # "" means unset; see check_security_settings.
    secret_key: str = ""
    auth_cookie_name: str = "access_token"
    secure_cookies: bool = False
    token_expire_seconds: int = 24 * 60 * 60
    bcrypt_rounds: int = 12

    # --- HTTP ------------------------------------------------------------
    login_rate_limit: str = "10/minute"
    # Any storage URI the `limits` package accepts, e.g. redis://host:6379.
    rate_limit_storage: str = "memory://"
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://localhost:5173"]

    @model_validator(mode="after")
    def check_security_settings(self) -> "Settings":
        if not self.secret_key:
            if not self.debug:
                raise ValueError(
                    "SECRET_KEY is not set. Configure it in the environment or .env, "
                    "or set DEBUG=true to run with a temporary key."
                )
            self.secret_key = secrets.token_hex(32)
            logger.warning("DEBUG mode: generated a temporary SECRET_KEY; sessions end on restart.")
        if len(self.secret_key) < _MIN_SECRET_KEY_LENGTH:
            raise ValueError(f"SECRET_KEY must be at least {_MIN_SECRET_KEY_LENGTH} characters long.")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        if self.token_expire_seconds <= 0:
            raise ValueError("TOKEN_EXPIRE_SECONDS must be positive.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings instance.

    Tests that need different values set the environment first, then call
    get_settings.cache_clear().
    """
    return Settings()
