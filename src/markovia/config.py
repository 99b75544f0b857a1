"""Runtime configuration using pydantic-settings.

Values come from ``MARKOVIA_*`` environment variables (or a ``.env`` file).
Consumers call ``get_settings()`` for a cached instance; tests construct
``Settings(...)`` directly.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MARKOVIA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Produce spans at all; when False the renderer gets an empty list
    enable_wysiwym: bool = True
    # Which inline constructs a link suppresses: bold/italic only, or everything
    link_exclusion: Literal["emphasis", "all"] = "emphasis"
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
