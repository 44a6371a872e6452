"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, AnyHttpUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Optional so the app can boot and report a clear error per request
    openai_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "openai_api_key"),
    )
    openai_base_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("https://api.openai.com/v1"),
        validation_alias=AliasChoices("OPENAI_BASE_URL", "openai_base_url"),
    )
    generation_model: str = Field(
        default="gpt-4.1-mini",
        validation_alias=AliasChoices(
            "LESSON_GENERATION_MODEL",
            "OPENAI_MODEL",
            "generation_model",
        ),
    )
    request_timeout: float = Field(
        default=120.0,
        validation_alias=AliasChoices("OPENAI_TIMEOUT", "request_timeout"),
        ge=1,
    )

    image_search_base_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("https://commons.wikimedia.org"),
        validation_alias=AliasChoices(
            "IMAGE_SEARCH_BASE_URL",
            "image_search_base_url",
        ),
    )
    image_search_thumbnail_width: int = Field(
        default=800,
        ge=1,
        validation_alias=AliasChoices(
            "IMAGE_SEARCH_THUMBNAIL_WIDTH",
            "image_search_thumbnail_width",
        ),
    )
    image_search_timeout: float = Field(
        default=15.0,
        ge=1,
        validation_alias=AliasChoices(
            "IMAGE_SEARCH_TIMEOUT",
            "image_search_timeout",
        ),
    )

    max_upload_bytes: int = Field(
        default=2 * 1024 * 1024,
        ge=1,
        validation_alias=AliasChoices("MAX_UPLOAD_BYTES", "max_upload_bytes"),
    )

    generation_log_dir: Path = Field(
        default_factory=lambda: Path("logs/generations"),
        validation_alias=AliasChoices(
            "GENERATION_LOG_DIR",
            "generation_log_dir",
        ),
    )
    logging_settings_path: Path = Field(
        default_factory=lambda: Path("logging_settings.conf"),
        validation_alias=AliasChoices(
            "LOGGING_SETTINGS_PATH",
            "logging_settings_path",
        ),
    )

    @property
    def has_openai_credentials(self) -> bool:
        if self.openai_api_key is None:
            return False
        return bool(self.openai_api_key.get_secret_value().strip())

    def resolve_path(self, path: Path) -> Path:
        """Anchor relative paths at the project root."""

        if path.is_absolute():
            return path
        return PROJECT_ROOT / path


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()  # pyright: ignore[reportCallIssue]


__all__ = ["PROJECT_ROOT", "Settings", "get_settings"]
