"""Configuration management using Pydantic Settings.

Loads configuration from multiple sources with the following priority (highest first):
1. Environment variables (RELAY_* prefix)
2. .env file
3. config.local.yaml (if exists)
4. config.yaml
5. Default values
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CorsSettings(BaseModel):
    """CORS configuration."""

    allowed_origins: list[str] = ["*"]
    allowed_methods: list[str] = ["GET", "POST", "OPTIONS"]
    allowed_headers: list[str] = [
        "Content-Type",
        "Authorization",
        "X-API-Key",
        "X-Request-ID",
        "anthropic-version",
    ]


class ServerSettings(BaseModel):
    """Server configuration."""

    host: str = "0.0.0.0"
    port: int = 8000
    cors: CorsSettings = Field(default_factory=CorsSettings)


class UpstreamSettings(BaseModel):
    """1min.ai endpoints and outbound request settings."""

    api_url: str = "https://api.1min.ai/api/features"
    asset_url: str = "https://api.1min.ai/api/assets"
    timeout_seconds: int = Field(default=60, ge=1)
    user_agent: str = "Mozilla/5.0 (compatible; 1min-relay/1.0; +https://1min.ai)"


class WebSearchSettings(BaseModel):
    """Settings applied when a model name requests web search."""

    enabled: bool = True
    suffix: str = ":online"
    num_of_site: int = Field(default=3, ge=1, le=10)
    max_word: int = Field(default=500, ge=1)

    @field_validator("suffix")
    @classmethod
    def suffix_starts_with_colon(cls, v: str) -> str:
        if not v.startswith(":") or len(v) < 2:
            raise ValueError("web search suffix must look like ':name'")
        return v.lower()


class CatalogSettings(BaseModel):
    """Model catalog source and cache configuration.

    When ``url`` is set the catalog is fetched from it; otherwise the
    static model lists below are used.
    """

    url: str | None = None
    cache_ttl_seconds: int = Field(default=300, ge=0)
    chat_models: list[str] = [
        "gpt-4o",
        "gpt-4o-mini",
        "gpt-4-turbo",
        "gpt-3.5-turbo",
        "claude-3-5-sonnet-20240620",
        "claude-3-5-haiku-20241022",
        "claude-3-opus-20240229",
        "gemini-1.5-pro",
        "gemini-1.5-flash",
        "mistral-large-latest",
        "deepseek-chat",
    ]
    vision_models: list[str] = [
        "gpt-4o",
        "gpt-4o-mini",
        "gpt-4-turbo",
        "claude-3-5-sonnet-20240620",
        "claude-3-opus-20240229",
        "gemini-1.5-pro",
        "gemini-1.5-flash",
    ]
    image_models: list[str] = [
        "dall-e-3",
        "dall-e-2",
        "stable-diffusion-xl-1024-v1-0",
        "midjourney",
    ]


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


def _load_yaml_config(config_dir: Path) -> dict:
    """Load configuration from YAML files.

    Loads config.yaml and optionally overlays config.local.yaml.
    """
    config = {}

    config_file = config_dir / "config.yaml"
    if config_file.exists():
        with open(config_file) as f:
            config = yaml.safe_load(f) or {}

    local_config_file = config_dir / "config.local.yaml"
    if local_config_file.exists():
        with open(local_config_file) as f:
            local_config = yaml.safe_load(f) or {}
            config = _deep_merge(config, local_config)

    return config


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class Settings(BaseSettings):
    """Application settings loaded from environment, .env, and config files."""

    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    upstream: UpstreamSettings = Field(default_factory=UpstreamSettings)
    web_search: WebSearchSettings = Field(default_factory=WebSearchSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)

    # Direct environment variable mappings for common settings
    asset_url: str | None = Field(default=None, validation_alias="ONEMIN_ASSET_URL")
    api_url: str | None = Field(default=None, validation_alias="ONEMIN_API_URL")

    def __init__(self, config_dir: Path | None = None, **data):
        """Initialize settings, loading from YAML if config_dir provided."""
        if config_dir is not None:
            yaml_config = _load_yaml_config(config_dir)
            # Explicit data wins over YAML
            merged = _deep_merge(yaml_config, data)
            super().__init__(**merged)
        else:
            super().__init__(**data)

        if self.asset_url:
            self.upstream.asset_url = self.asset_url

        if self.api_url:
            self.upstream.api_url = self.api_url


@lru_cache
def get_settings(config_dir: Path | None = None) -> Settings:
    """Get cached settings instance.

    Args:
        config_dir: Optional path to config directory. If None, the
                   ``config`` directory at the project root is used when present.

    Returns:
        Settings instance.
    """
    if config_dir is None:
        project_root = Path(__file__).parent.parent.parent
        default_config_dir = project_root / "config"
        if default_config_dir.exists():
            config_dir = default_config_dir

    return Settings(config_dir=config_dir)
