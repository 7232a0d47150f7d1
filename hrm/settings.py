from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    App settings.

    Notes:
    - Defaults are local and deterministic (SQLite file, dev secrets).
    - Every field can be overridden with an ``HRM_`` environment variable,
      e.g. ``HRM_JWT_SECRET`` or ``HRM_LOG_LEVEL``.
    """

    model_config = SettingsConfigDict(env_prefix="HRM_", extra="ignore")

    db_url: str | None = None
    security_config_path: str | None = None
    roles_config_path: str | None = None
    log_level: str = "INFO"
    seed_demo_data: bool = True

    # Expand "*" role entries against the permission catalog at load time.
    expand_wildcards: bool = True

    jwt_secret: str = "dev-access-secret-change-me-0123456789abcdef"
    jwt_refresh_secret: str = "dev-refresh-secret-change-me-0123456789abcdef"
    jwt_issuer: str = "hrm"
    jwt_algorithm: str = "HS256"
    access_token_ttl_seconds: int = 15 * 60
    refresh_token_ttl_seconds: int = 7 * 24 * 60 * 60

    otp_ttl_seconds: int = 5 * 60
    otp_length: int = 6
    otp_max_attempts: int = 3
    otp_resend_cooldown_seconds: int = 60

    password_hash_rounds: int = 12
    # Self-registered accounts get this role until an admin changes it.
    registration_role_id: str = "viewer"

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        db_path = repo_root / "hrm.db"
        return f"sqlite:///{db_path}"

    def resolved_security_config_path(self) -> Path:
        if self.security_config_path:
            return Path(self.security_config_path)
        return _config_dir() / "security_config.yaml"

    def resolved_roles_config_path(self) -> Path:
        if self.roles_config_path:
            return Path(self.roles_config_path)
        return _config_dir() / "roles.yaml"


def _config_dir() -> Path:
    return Path(__file__).resolve().parents[1] / "config"


@lru_cache
def get_settings() -> Settings:
    return Settings()
