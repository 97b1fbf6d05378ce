from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    APP_ENV: str = "local"
    QUEUE_BACKEND: Literal["sqs", "memory"] = "sqs"
    STORE_BACKEND: Literal["supabase", "memory"] = "supabase"

    SUPABASE_URL: Optional[AnyUrl] = None
    SUPABASE_SERVICE_ROLE_KEY: str = ""

    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_REGION: str = "us-east-1"
    DISH_QUEUE_URL: str = ""
    QUEUE_SEND_TIMEOUT_SECONDS: int = 10
    MEMORY_QUEUE_VISIBILITY_SECONDS: float = 30
    MEMORY_QUEUE_MAX_RECEIVES: int = 3

    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    ENRICHMENT_TIMEOUT_SECONDS: int = 60

    # Host serving the Faye endpoint that relays progress to browsers
    API_HOST: str = "http://localhost:9292"

    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
