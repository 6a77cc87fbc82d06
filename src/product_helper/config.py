"""Configuration management for Product Helper.

Settings come from ``PRODUCT_HELPER_*`` environment variables or a ``.env``
file. Credentials also accept their conventional unprefixed names
(``ANTHROPIC_API_KEY``, ``SHORTCUT_API_TOKEN``, ``GITHUB_TOKEN``).
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_CHAT_MODEL = "claude-opus-4-6"
SUMMARY_MODEL = "claude-haiku-4-5-20251001"

ALLOWED_MODELS = frozenset(
    {
        "claude-opus-4-6",
        "claude-sonnet-4-6",
        "claude-haiku-4-5-20251001",
    }
)


def resolve_model(model: str | None) -> str:
    """Return ``model`` if it is on the allow-list, else the default chat model."""
    if model in ALLOWED_MODELS:
        return model
    if model:
        logger.debug("Model %r not allowed, using %s", model, DEFAULT_CHAT_MODEL)
    return DEFAULT_CHAT_MODEL


def get_data_dir() -> Path:
    """Default data directory (cache + reference library)."""
    return Path.home() / ".product-helper"


class Settings(BaseSettings):
    """Product Helper settings with env and .env support."""

    model_config = SettingsConfigDict(
        env_prefix="PRODUCT_HELPER_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    # Credentials
    anthropic_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PRODUCT_HELPER_ANTHROPIC_API_KEY", "ANTHROPIC_API_KEY"),
        description="Anthropic API key",
    )
    shortcut_api_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PRODUCT_HELPER_SHORTCUT_API_TOKEN", "SHORTCUT_API_TOKEN"),
        description="Shortcut API token",
    )
    github_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PRODUCT_HELPER_GITHUB_TOKEN", "GITHUB_TOKEN"),
        description="GitHub token (optional, raises rate limits and unlocks private repos)",
    )

    # Upstream endpoints
    shortcut_base_url: str = Field(default="https://api.app.shortcut.com/api/v3")
    github_base_url: str = Field(default="https://api.github.com")
    request_timeout: float = Field(default=30.0, description="HTTP timeout in seconds")

    # Models
    chat_model: str = Field(default=DEFAULT_CHAT_MODEL, description="Default chat model")
    summary_model: str = Field(default=SUMMARY_MODEL, description="Transcript summary model")
    chat_max_tokens: int = Field(default=8192)
    summary_max_tokens: int = Field(default=1024)

    # Data files
    data_dir: Path = Field(default_factory=get_data_dir)
    cache_file: Path | None = Field(default=None, description="Override for the context cache")
    library_file: Path | None = Field(default=None, description="Override for the library config")
    cache_max_age_days: int = Field(default=7, description="Cache is stale after this many days")

    # Reference documents in Shortcut
    sdlc_sop_doc_id: str = Field(default="685c2655-b99d-428b-be72-cfab2e2d44a2")
    story_template_doc_id: str = Field(default="68408807-787a-463e-80cd-da0e87e1d725")
    epic_template_doc_id: str = Field(default="685c577e-c55c-4831-8b79-d93d0d2e9a8d")
    objective_template_doc_id: str = Field(default="685c648d-4009-489f-9a58-7e8a0965c2e4")

    # Reference sampling during refresh
    reference_epics_per_objective: int = Field(default=2)
    reference_stories_per_epic: int = Field(default=2)

    # Web server
    web_host: str = Field(default="127.0.0.1")
    web_port: int = Field(default=3001)
    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"]
    )

    log_level: str = Field(default="INFO")

    @property
    def cache_path(self) -> Path:
        return self.cache_file or self.data_dir / "context" / "cache.json"

    @property
    def library_path(self) -> Path:
        return self.library_file or self.data_dir / "config.json"

    @property
    def doc_ids(self) -> dict[str, str]:
        """Cache field name → Shortcut document id."""
        return {
            "sdlc_sop": self.sdlc_sop_doc_id,
            "story_template": self.story_template_doc_id,
            "epic_template": self.epic_template_doc_id,
            "objective_template": self.objective_template_doc_id,
        }


@lru_cache
def get_settings(force_reload: bool = False) -> Settings:
    """Get cached settings instance."""
    if force_reload:
        get_settings.cache_clear()
    return Settings()
