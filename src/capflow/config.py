"""
Capflow Configuration System

Loads configuration from:
1. Default config (config/default.yaml in the repository)
2. User config (~/.capflow/config/capflow.yaml)
3. Environment variables (CAPFLOW_ prefix)

Uses Pydantic for validation and type coercion.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


def expand_path(path: str | Path | None) -> Path | None:
    """Expand ~ and environment variables in paths."""
    if path is None:
        return None
    expanded = os.path.expandvars(os.path.expanduser(str(path)))
    return Path(expanded)


class CapflowMeta(BaseModel):
    """Core metadata."""

    name: str = "capflow"
    version: str = "0.1.0"


class LogConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "console"] = "json"
    file: Path | None = None

    @field_validator("file", mode="before")
    @classmethod
    def expand_file_path(cls, v: Any) -> Path | None:
        return expand_path(v)


class DatabaseConfig(BaseModel):
    """Capture store configuration."""

    driver: Literal["sqlite"] = "sqlite"
    path: Path = Path("~/.capflow/data/captures.db")
    echo: bool = False

    @field_validator("path", mode="before")
    @classmethod
    def expand_db_path(cls, v: Any) -> Path:
        expanded = expand_path(v)
        return expanded if expanded else Path("~/.capflow/data/captures.db")

    @property
    def url(self) -> str:
        """Generate SQLAlchemy connection URL."""
        if self.driver == "sqlite":
            self.path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite+aiosqlite:///{self.path}"
        raise ValueError(f"Unsupported database driver: {self.driver}")


class EventsConfig(BaseModel):
    """Event bus configuration."""

    handler_timeout: float = 30.0


class PipelineConfig(BaseModel):
    """Scoring and adaptation thresholds."""

    relevance_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    high_priority_confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    min_action_confidence: float = Field(default=0.6, ge=0.0, le=1.0)
    recent_days: int = Field(default=7, ge=0)
    fetch_limit: int = Field(default=10, ge=1)
    strict_suggestions: bool = False


class LLMConfig(BaseModel):
    """Inference (LLM) configuration."""

    primary_provider: str = "openai"  # claude or openai
    fallback_provider: str | None = None
    claude_model: str = "claude-sonnet-4-20250514"
    openai_model: str = "gpt-4o-mini"
    anthropic_api_key: str | None = None
    openai_api_key: str | None = None
    max_tokens: int = 500
    intent_temperature: float = 0.3
    emotion_temperature: float = 0.2
    timeout: float = 30.0
    max_retries: int = 2


class CapflowConfig(BaseSettings):
    """
    Main configuration.

    Loads from YAML files and environment variables.
    Environment variables use CAPFLOW_ prefix and __ for nesting.
    Example: CAPFLOW_PIPELINE__RELEVANCE_THRESHOLD=0.6
    """

    model_config = SettingsConfigDict(
        env_prefix="CAPFLOW_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    capflow: CapflowMeta = Field(default_factory=CapflowMeta)
    log: LogConfig = Field(default_factory=LogConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment beats the YAML values passed in as init kwargs
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def find_config_file() -> Path | None:
    """
    Find the configuration file.

    Search order:
    1. ~/.capflow/config/capflow.yaml (user config)
    2. ./config/default.yaml (development default)
    """
    user_config = Path.home() / ".capflow" / "config" / "capflow.yaml"
    if user_config.exists():
        return user_config

    dev_config = Path.cwd() / "config" / "default.yaml"
    if dev_config.exists():
        return dev_config

    return None


def load_yaml_config(path: Path | None) -> dict[str, Any]:
    """Load configuration from YAML file."""
    if path is None or not path.exists():
        return {}

    with open(path) as f:
        data = yaml.safe_load(f)

    return data if data else {}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_config(path: Path | None = None, overrides: dict[str, Any] | None = None) -> CapflowConfig:
    """
    Load complete configuration.

    Merges:
    1. Pydantic defaults
    2. YAML file configuration
    3. Explicit overrides (e.g. from the command line)
    4. Environment variables (highest priority)
    """
    yaml_config = load_yaml_config(path or find_config_file())
    if overrides:
        yaml_config = deep_merge(yaml_config, overrides)

    return CapflowConfig(**yaml_config)


# Global config instance (lazy-loaded)
_config: CapflowConfig | None = None


def get_config() -> CapflowConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None
