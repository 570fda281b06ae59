"""
openplan.settings

Process settings model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for the service process.
- Hide secrets from repr/logging (e.g., JWT secret).
- Offer a cached settings instance for dependency injection.

Application-level options (mail delivery, attachment storage, ...) live in the
YAML-backed `openplan.configuration` instead.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="OPENPLAN_", case_sensitive=False)

    # Environment selects the YAML configuration section and toggles auto-init of DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "openplan"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "openplan"
    jwt_audience: str = "openplan-api"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./openplan.db"

    # Application configuration file (see openplan.configuration)
    configuration_file: str = "config/configuration.yml"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# `env` doubles as the section name looked up in configuration.yml, so the
# literal values here must match the YAML sections shipped in config/.
