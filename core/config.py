"""
Centralized configuration management.
All environment variables and settings are defined here.
"""
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings
from pydantic import Field, validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = Field(default="Finance Tracker Service", alias="APP_NAME")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    api_prefix: str = Field(default="/api", alias="API_PREFIX")
    cors_origins: List[str] = Field(default=["http://localhost:5173"], alias="CORS_ORIGINS")

    # Auth
    token_expire_minutes: int = Field(default=60 * 24, alias="TOKEN_EXPIRE_MINUTES")

    # OpenAI
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_gateway_url: str = Field(
        default="https://api.openai.com/v1/chat/completions",
        alias="OPENAI_GATEWAY_URL"
    )
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openai_timeout: int = Field(default=60, alias="OPENAI_TIMEOUT")
    openai_verify_ssl: bool = Field(default=True, alias="OPENAI_VERIFY_SSL")

    # Extraction
    ocr_language: str = Field(default="eng", alias="OCR_LANGUAGE")
    ocr_dpi: int = Field(default=200, alias="OCR_DPI")
    ocr_max_pages: int = Field(default=1, alias="OCR_MAX_PAGES")
    fuzzy_match_threshold: float = Field(default=0.75, alias="FUZZY_MATCH_THRESHOLD")
    max_upload_mb: int = Field(default=10, alias="MAX_UPLOAD_MB")

    # Transactions
    default_currency: str = Field(default="INR", alias="DEFAULT_CURRENCY")

    # Storage
    temp_storage_path: str = Field(default="uploads", alias="STORAGE_PATH")
    database_path: str = Field(default="finance.db", alias="DATABASE_PATH")

    @validator("log_level")
    def validate_log_level(cls, v):
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v_upper

    @validator("port")
    def validate_port(cls, v):
        """Validate port is in valid range."""
        if not (1 <= v <= 65535):
            raise ValueError("Port must be between 1 and 65535")
        return v

    @validator("fuzzy_match_threshold")
    def validate_threshold(cls, v):
        """Validate fuzzy threshold is a ratio."""
        if not (0.0 < v <= 1.0):
            raise ValueError("Fuzzy match threshold must be in (0, 1]")
        return v

    @validator("ocr_max_pages", "max_upload_mb", "token_expire_minutes", "ocr_dpi")
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"
        populate_by_name = True

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    def ensure_directories(self) -> None:
        """Ensure required directories exist."""
        Path(self.temp_storage_path).mkdir(parents=True, exist_ok=True)
        Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
        _settings.ensure_directories()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton (useful for testing)."""
    global _settings
    _settings = None
