"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - No credential is ever read from the environment (callers pass it to start())
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for every setting: works out-of-the-box against production hosts
    - Per-flow options live in schemas.flow.FlowConfig, not here
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Deployment settings from environment variables (prefix VERIFYFLOW_)."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="VERIFYFLOW_", case_sensitive=False, extra="ignore",
    )

    # Remote APIs
    validations_base_url: str = "https://api.validations.truora.com/v1"
    account_base_url: str = "https://api.account.truora.com/v1"
    http_timeout_seconds: float = 30.0

    @field_validator("validations_base_url", "account_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
