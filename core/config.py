"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Gatekeeper happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY, static_prefix -> STATIC_PREFIX).

  @model_validator(mode="after"): the only place the session cookie
      signing key is decided. DEBUG mode falls back to a throwaway key,
      production refuses to start without a real one.

Layer rule: core/ is the kernel. This module may not import from auth/ or web/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("gatekeeper.config")

_PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string means "not configured"; the validator below either
    # generates a dev key or raises.
    secret_key: str = ""
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Session cookie
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    session_max_age: int = 14 * 24 * 60 * 60

    # ------------------------------------------------------------------
    # HTTP surface
    # ------------------------------------------------------------------

    cors_allowed_origin: str = "*"
    cors_allowed_methods: str = "GET, POST, OPTIONS"
    # Where the fault boundary sends visitors after an unhandled error.
    error_redirect: str = "/error"
    static_dir: Path = _PROJECT_ROOT / "web" / "static"
    static_prefix: str = "/static"

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    users_db_url: str = f"sqlite:///{_PROJECT_ROOT / 'auth' / 'gatekeeper_users.db'}"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Settle the key that signs the session cookie.

        The cookie carries the signed-in user id, so the key is the only thing
        standing between a visitor and a forged login. With DEBUG=true a
        missing key is replaced by a random one and every restart signs
        everyone out. Otherwise a missing or short key stops startup.
        """
        if not self.secret_key:
            if not self.debug:
                raise ValueError(
                    "SECRET_KEY is required to sign session cookies. "
                    "Set SECRET_KEY in your environment or .env file, "
                    "or set DEBUG=true to use a throwaway key."
                )
            self.secret_key = secrets.token_hex(32)
            logger.warning("SECRET_KEY not set; using a throwaway key. Sessions end on restart.")
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters to sign session cookies.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
