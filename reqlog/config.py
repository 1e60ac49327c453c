from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=True, alias="LOG_JSON")
    log_request_started_line: bool = Field(default=True, alias="LOG_REQUEST_STARTED_LINE")
    log_scheme_fields: bool = Field(default=False, alias="LOG_SCHEME_FIELDS")
    request_id_header: str = Field(default="X-Request-ID", alias="REQUEST_ID_HEADER")
    tick_interval_seconds: float = Field(default=1.0, alias="TICK_INTERVAL_SECONDS")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
