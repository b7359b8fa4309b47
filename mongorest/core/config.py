from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MONGOREST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    MONGODB_URL: str = Field(default="mongodb://localhost:27017")
    MONGODB_DB: str = Field(default="mongorest")
    LOG_LEVEL: str = Field(default="WARNING")
    DEBUG: bool = Field(default=False)
    # status used for errors that carry none of their own
    DEFAULT_ERROR_STATUS: int = Field(default=500, ge=400, le=599)


@lru_cache()
def get_config() -> Settings:
    return Settings()


config = get_config()
