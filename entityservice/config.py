"""Client Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Every setting has a working default; nothing is required to start
    - api_url never ends with "/" (endpoints are joined as f"{api_url}/{path}")
    - get_settings() is cached (lru_cache): single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - ENTITYSERVICE_ prefix: the client is embedded in host applications whose
      own variables must not collide with ours
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from entityservice.core.domain_types import DEFAULT_CACHE_TTL_MS, CacheHitPolicy


class Settings(BaseSettings):
    """Client settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ENTITYSERVICE_", env_file=".env", case_sensitive=False,
    )

    # Server
    api_url: str = "http://localhost:3000/api"
    http_timeout_seconds: float = 30.0

    @field_validator("api_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    # Cache
    cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS
    # None: "all" for unfiltered queries, "previousQuery" for filtered ones
    on_cache_hit_return: CacheHitPolicy | None = None

    # Mapping
    only_emit_changed: bool = True

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
