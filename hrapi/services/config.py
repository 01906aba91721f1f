from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_path: str = "./data/hr.db"
    db_busy_timeout_seconds: float = 5.0
    # "Today" for contract and assignment dates is the office's calendar day.
    timezone: str = "Asia/Seoul"

    use_real_llm: bool = False
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    llm_timeout_seconds: float = 45.0

    api_port: int = 4000
    frontend_url: str = "http://localhost:3000"
    log_level: str = "INFO"

    @property
    def resolved_database_path(self) -> Path:
        path = Path(self.database_path)
        if path.is_absolute():
            return path
        return Path(__file__).resolve().parents[2] / path


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
