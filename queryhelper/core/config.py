from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="QUERYHELPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DEFAULT_PAGE: int = Field(default=1, ge=1)
    DEFAULT_PAGE_SIZE: int = Field(default=10, ge=1)
    MAX_PAGE_SIZE: int = Field(default=100, ge=1)

    # Hard limits applied when decoding raw client payloads.
    MAX_FILTERS: int = 50
    MAX_FIELDS: int = 20
    MAX_PAYLOAD_LENGTH: int = 10_000


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
