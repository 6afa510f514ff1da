"""
Configuration management using Pydantic Settings.

Loads configuration from environment variables with validation and type safety.
"""

import codecs
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DELIMITER = ","


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are loaded from .env file or environment variables.
    See .env.example for all available options.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="csv-export", description="Application name")
    app_env: Literal["development", "staging", "production"] = Field(
        default="production", description="Environment"
    )
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "text"] = Field(default="json", description="Log format")
    debug: bool = Field(default=False, description="Debug mode")

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/csvexport.db",
        description="Async database connection URL",
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size")
    db_max_overflow: int = Field(default=10, description="Database max overflow connections")
    db_pool_timeout: int = Field(default=30, description="Database pool timeout in seconds")
    db_pool_recycle: int = Field(default=3600, description="Database pool recycle time")

    # CSV export
    csv_default_delimiter: str = Field(
        default=DEFAULT_DELIMITER, description="Field separator when a request names none"
    )
    csv_encoding: str = Field(
        default="utf-8", description="Text encoding of exported files (utf-8-sig adds a BOM)"
    )
    csv_line_terminator: str = Field(default="\n", description="Record terminator")
    csv_include_end_row_delimiter: bool = Field(
        default=False, description="Terminate the last record as well"
    )
    export_buffer_size: int = Field(
        default=16,
        ge=1,
        description="Encoded chunks buffered between query and response before backpressure",
    )
    export_tables: str = Field(
        default="", description="Tables downloadable under /exports (comma-separated)"
    )

    # Privacy
    mask_sensitive_data_in_logs: bool = Field(
        default=True, description="Mask e-mail addresses in log output"
    )

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")
    enable_api_docs: bool = Field(default=True, description="Enable API documentation")
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:8000",
        description="Allowed CORS origins (comma-separated)",
    )

    @field_validator("allowed_origins", "export_tables")
    @classmethod
    def parse_comma_list(cls, v: str) -> list[str]:
        """Parse comma-separated values into list."""
        return [item.strip() for item in v.split(",") if item.strip()]

    @field_validator("csv_default_delimiter")
    @classmethod
    def validate_delimiter(cls, v: str) -> str:
        """A CSV delimiter is exactly one character."""
        if len(v) != 1:
            raise ValueError(f"Delimiter must be a single character, got {v!r}")
        return v

    @field_validator("csv_encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Reject encodings the codecs registry does not know."""
        try:
            codecs.lookup(v)
        except LookupError as e:
            raise ValueError(f"Unknown encoding: {v}") from e
        return v

    @field_validator("csv_line_terminator")
    @classmethod
    def validate_line_terminator(cls, v: str) -> str:
        """Records need a non-empty separator."""
        if not v:
            raise ValueError("Line terminator must not be empty")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.app_env == "development"


# Global settings instance
settings = Settings()
