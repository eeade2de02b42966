from functools import lru_cache
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Scheduling Pool API"
    app_env: str = "development"
    app_version: str = "0.1.0"
    api_prefix: str = "/api"
    allowed_origins: Annotated[list[str], NoDecode] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    calendly_api_url: str = "https://api.calendly.com"
    calendly_api_timeout_seconds: float = 10.0
    hosts_file: str = "hosts.json"
    default_timezone: str = "Asia/Kolkata"
    slot_duration_minutes: int = 30
    min_start_buffer_seconds: int = 60
    max_window_days: int = 7
    fallback_status_codes: Annotated[list[int], NoDecode] = [403, 404, 422]

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("fallback_status_codes", mode="before")
    @classmethod
    def parse_fallback_status_codes(cls, value: str | list[int]) -> list[int]:
        if isinstance(value, str):
            return [int(code.strip()) for code in value.split(",") if code.strip()]
        return value

    @field_validator("calendly_api_timeout_seconds", mode="before")
    @classmethod
    def normalize_calendly_timeout(cls, value: float | str) -> float:
        parsed_value = float(value)
        if parsed_value <= 0:
            return 10.0
        return parsed_value

    @field_validator("slot_duration_minutes", mode="before")
    @classmethod
    def normalize_slot_duration(cls, value: int | str) -> int:
        parsed_value = int(value)
        if parsed_value <= 0:
            return 30
        return parsed_value

    @field_validator("max_window_days", mode="before")
    @classmethod
    def normalize_max_window_days(cls, value: int | str) -> int:
        parsed_value = int(value)
        if parsed_value <= 0:
            return 7
        return parsed_value

    @field_validator("min_start_buffer_seconds", mode="before")
    @classmethod
    def normalize_min_start_buffer(cls, value: int | str) -> int:
        parsed_value = int(value)
        if parsed_value < 0:
            return 60
        return parsed_value

    @field_validator("default_timezone", mode="before")
    @classmethod
    def normalize_default_timezone(cls, value: str) -> str:
        return value.strip() or "Asia/Kolkata"


@lru_cache
def get_settings() -> Settings:
    return Settings()
