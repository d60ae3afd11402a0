"""Application configuration via Pydantic Settings."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Detail-page fetches allowed in flight at once
    MAX_CONCURRENT_FETCHES: int = 5

    # HTTP
    REQUEST_TIMEOUT: float = 30.0
    FETCH_RETRY_ATTEMPTS: int = 3
    USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
    )

    # Requests per minute for storefront domains without an explicit limit
    DEFAULT_RPM: int = 30

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # A successful auth probe younger than this is not repeated
    AUTH_FRESHNESS_HOURS: int = 24

    @field_validator("MAX_CONCURRENT_FETCHES", "FETCH_RETRY_ATTEMPTS")
    @classmethod
    def at_least_one(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value


settings = Settings()
