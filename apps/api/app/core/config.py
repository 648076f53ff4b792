from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    env: str = "development"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = ["http://localhost:3000"]

    log_level: str = "INFO"
    log_json: bool = True

    # AI provider selection (gemini by default, openai when configured)
    ai_provider: Literal["gemini", "openai"] = "gemini"
    ai_request_timeout_sec: int = 30
    ai_max_concurrency: int = 4
    ai_backpressure_acquire_timeout_ms: int = 200
    workout_max_attempts: int = 2
    drill_generation_max_attempts: int = 2

    # GOOGLE_API_KEY is the name the web client shipped with
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "GEMINI_API_KEY",
            "GOOGLE_API_KEY",
            "GOOGLE_GENERATIVE_AI_API_KEY",
        ),
    )
    gemini_model: str = "gemini-2.0-flash"

    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"

    drill_cache_ttl_sec: int = 300

    offline_db_path: str = "dojo-offline.sqlite3"
    offline_max_retries: int = 3
    offline_remote_base_url: str = "http://localhost:8000"
    offline_request_timeout_sec: float = 10.0
    offline_probe_path: str = "/health"
    offline_probe_interval_sec: float = 15.0

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
