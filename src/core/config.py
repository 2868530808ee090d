"""
Centralised application settings loaded from environment / .env file.
"""
from __future__ import annotations

from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load .env from project root (two levels up from this file)
_ENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseSettings):
    # ── Postgres ─────────────────────────────────────────
    postgres_user: str = "history"
    postgres_password: str = "history_pw"
    postgres_db: str = "query_history"
    postgres_host: str = "localhost"
    postgres_port: int = 5432

    # Any SQLAlchemy URL; wins over the postgres_* fields when set
    history_db_url: str = ""

    # ── Query history ────────────────────────────────────
    history_default_limit: int = 100
    history_retention_days: int = 14
    history_migration_atomic: bool = False

    # ── App ──────────────────────────────────────────────
    api_port: int = 8000
    streamlit_port: int = 8501
    log_level: str = "INFO"

    @property
    def database_url(self) -> str:
        if self.history_db_url:
            return self.history_db_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()
