"""
Library configuration.

Settings are read from EXPRTREE_* environment variables (or a .env file).
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """exprtree settings"""

    model_config = SettingsConfigDict(
        env_prefix="EXPRTREE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Logging
    LOG_LEVEL: str = "WARNING"
    LOG_FORMAT: Literal["text", "json"] = "text"
    LOG_FILE: Optional[str] = None

    # YAML grammar replacing the built-in operators/functions
    GRAMMAR_FILE: Optional[str] = None


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
