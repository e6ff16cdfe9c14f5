from __future__ import annotations

"""Service settings loaded from the environment."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="FLOWDAG_", extra="ignore")

    service_title: str = "Workflow Definition Service"
    log_level: str = "INFO"
    definition_indent: int = 4


def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
