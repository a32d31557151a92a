"""Configuration management using Pydantic settings with an optional JSON config file."""

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Paths ---

APP_NAME = "searx-rag"


def get_config_dir() -> Path:
    """Get the configuration directory (e.g. ~/.config/searx-rag)."""
    if os.name == "nt":
        base = Path(os.environ.get("APPDATA", Path.home() / ".config")).expanduser()
    else:
        base = Path("~/.config").expanduser()

    return base / APP_NAME


CONFIG_FILE = get_config_dir() / "config.json"


def load_config_file(path: Path | None = None) -> dict[str, Any]:
    """Load settings from the JSON config file if it exists."""
    path = path or CONFIG_FILE
    if not path.exists():
        return {}

    try:
        text = path.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        data = json.loads(text)
    except (OSError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


class SearchSettings(BaseSettings):
    """SearXNG search endpoint configuration."""

    model_config = SettingsConfigDict(env_prefix="SEARX_RAG_SEARCH_", populate_by_name=True)

    instance_url: str = Field(
        default="http://localhost:8888",
        validation_alias=AliasChoices("SEARX_RAG_SEARCH_INSTANCE_URL", "SEARXNG_INSTANCE"),
        description="Base URL of the SearXNG instance",
    )
    categories: str = Field(default="general", description="SearXNG categories to query")
    timeout_seconds: float = Field(default=30.0, description="Timeout for the search request")


class OllamaSettings(BaseSettings):
    """Ollama embedding and generation configuration."""

    model_config = SettingsConfigDict(env_prefix="SEARX_RAG_OLLAMA_", populate_by_name=True)

    host: str = Field(
        default="http://localhost:11434",
        validation_alias=AliasChoices("SEARX_RAG_OLLAMA_HOST", "OLLAMA_HOST"),
        description="Base URL of the Ollama server",
    )
    embedding_model: str = Field(default="nomic-embed-text")
    generation_model: str = Field(default="deepseek-optimized")
    num_ctx: int = Field(default=4096, description="Context window passed to the generation model")
    temperature: float = Field(default=0.3)
    embedding_timeout_seconds: float = Field(default=60.0, description="Timeout per embedding request")
    connect_timeout_seconds: float = Field(default=10.0, description="Connect timeout for generation requests")


class FetchSettings(BaseSettings):
    """Page fetch and content normalization configuration."""

    model_config = SettingsConfigDict(env_prefix="SEARX_RAG_FETCH_")

    timeout_ms: int = Field(default=5000, gt=0, description="Hard timeout per page fetch")
    max_content_length: int = Field(default=3000, gt=0, description="Maximum characters kept per page")
    min_text_length: int = Field(default=100, ge=0, description="Pages with this many characters or fewer are skipped")
    user_agent: str = Field(default="Mozilla/5.0")
    concurrency: int = Field(default=1, ge=1, description="Pages fetched concurrently per window")


class PipelineSettings(BaseSettings):
    """Query routing and ranking configuration."""

    model_config = SettingsConfigDict(env_prefix="SEARX_RAG_PIPELINE_")

    required_sources: int = Field(default=10, ge=1, description="Valid sources to collect before ranking")
    top_k: int = Field(default=3, ge=1, description="Ranked sources passed to the generator")
    always_search: bool = Field(default=False, description="Search the web for every query")
    trigger: str = Field(default="search", description="Substring that switches a query into web-search mode")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="SEARX_RAG_LOGGING_")

    level: str = Field(default="WARNING")
    json_output: bool = Field(default=False, description="Render log lines as JSON instead of console text")


class AppSettings(BaseSettings):
    """Root application settings.

    Priority: Environment Variables > Config File > Defaults
    """

    model_config = SettingsConfigDict(env_prefix="SEARX_RAG_", extra="ignore")

    search: SearchSettings = Field(default_factory=SearchSettings)
    ollama: OllamaSettings = Field(default_factory=OllamaSettings)
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _overlay_env(section: type[BaseSettings], file_section: dict[str, Any]) -> BaseSettings:
    """Build a settings section from file values, letting env vars win."""
    env_values = section().model_dump(exclude_unset=True)
    return section(**{**file_section, **env_values})


def load_settings(config_file: Optional[Path] = None) -> AppSettings:
    """Load settings with file config as base, env vars overlay."""
    file_data = load_config_file(config_file)
    sections = {
        "search": SearchSettings,
        "ollama": OllamaSettings,
        "fetch": FetchSettings,
        "pipeline": PipelineSettings,
        "logging": LoggingSettings,
    }
    kwargs = {}
    for name, section in sections.items():
        file_section = file_data.get(name)
        if isinstance(file_section, dict):
            kwargs[name] = _overlay_env(section, file_section)
    return AppSettings(**kwargs)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return the process-wide settings, loaded once."""
    return load_settings()
