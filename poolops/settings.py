from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    App settings.

    Notes:
    - Defaults are local and deterministic (SQLite file next to the repo, demo secret).
    - Every value can be overridden with a ``POOLOPS_`` environment variable.
    """

    model_config = SettingsConfigDict(env_prefix="POOLOPS_", extra="ignore")

    db_url: str | None = None
    security_config_path: str | None = None
    log_level: str = "INFO"

    jwt_secret: str = "change-me-in-production-use-32-bytes-min"
    jwt_algorithm: str = "HS256"
    jwt_issuer: str | None = None
    clock_skew_seconds: int = 30

    # Applied per caller to mutating endpoints; any `limits` storage URI works.
    rate_limit: str = "120/minute"
    rate_limit_storage_uri: str = "memory://"

    seed_demo_data: bool = True

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        db_path = repo_root / "poolops.db"
        return f"sqlite:///{db_path}"

    def resolved_security_config_path(self) -> Path:
        if self.security_config_path:
            return Path(self.security_config_path)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "config" / "security_config.yaml"


@lru_cache
def get_settings() -> Settings:
    return Settings()
