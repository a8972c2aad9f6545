from __future__ import annotations

from pydantic import Field

try:
    from pydantic_settings import BaseSettings, SettingsConfigDict
except Exception as e:  # pragma: no cover
    raise RuntimeError(
        "pydantic-settings is required. Install with: pip install pydantic-settings"
    ) from e


class GalaxySettings(BaseSettings):
    """Unified configuration for Knowledge Galaxy.

    Environment variables are prefixed with KNOWLEDGE_GALAXY_.
    """

    model_config = SettingsConfigDict(env_prefix="KNOWLEDGE_GALAXY_", extra="ignore")

    # --- Core ---
    log_level: str = Field(default="INFO", description="Python logging level")
    root_path: str = Field(default="~/.claude", description="Config + document root")

    # --- Adapters ---
    cache_ttl_ms: int = Field(default=5 * 60 * 1000, description="Adapter cache time-to-live")
    http_timeout_s: float = Field(default=30.0)

    # --- Layout ---
    layout: str = Field(default="orbital", description="orbital|force|sphere|spiral|hierarchical")

    # --- Watching ---
    watch_interval_s: float = Field(default=1.0, description="Polling interval of the local watcher")


settings = GalaxySettings()
