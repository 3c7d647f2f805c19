from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Timeouts
    http_timeout: float = Field(default=30.0, validation_alias="JSONHTTP_HTTP_TIMEOUT")

    # Errors
    error_body_limit: int = Field(default=512, validation_alias="JSONHTTP_ERROR_BODY_LIMIT")

    # Logging
    log_level: str = Field(default="INFO", validation_alias="JSONHTTP_LOG_LEVEL")
    log_json: bool = Field(default=False, validation_alias="JSONHTTP_LOG_JSON")
    log_file: Optional[str] = Field(default=None, validation_alias="JSONHTTP_LOG_FILE")
    log_config_path: str = Field(default="log_config.yaml", validation_alias="JSONHTTP_LOG_CONFIG")

    @field_validator("http_timeout")
    @classmethod
    def validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("JSONHTTP_HTTP_TIMEOUT must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"JSONHTTP_LOG_LEVEL must be one of {allowed}")
        return v.upper()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


settings = Settings()
