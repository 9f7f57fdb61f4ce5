"""
Configuration - loads env vars (and .env) with pydantic-settings.
"""

import os
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class Settings(BaseSettings):
    # Row store (hosted Postgres in production, SQLite locally)
    database_url: str = f"sqlite:///{os.path.join(PROJECT_ROOT, 'nxtgen.sqlite3')}"
    database_echo: bool = False

    # Seed data loaded on startup when the colleges table is empty
    seed_on_startup: bool = True
    seed_dir: str = os.path.join(PROJECT_ROOT, "data")

    # Tokens are issued by the hosted backend; we only verify them
    jwt_secret: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"

    # App sessions (flash popup flag, search gate)
    session_idle_minutes: int = 120
    max_sessions: int = 10000

    # App
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]
    port: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
