"""Client configuration using pydantic-settings."""
from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Backend API - shared with the web frontend (VITE_ prefix for Vite exposure)
    api_url: str = Field(
        default="http://localhost:5000/api/v1",
        validation_alias="VITE_BASE_URL",
    )
    api_timeout: float = Field(default=30.0, validation_alias="API_TIMEOUT")
    request_source: str = Field(default="web", validation_alias="REQUEST_SOURCE")

    # Durable session storage (the persisted `user` / `access_token` pair)
    session_storage: Literal["file", "memory", "redis"] = Field(
        default="file", validation_alias="SESSION_STORAGE",
    )
    session_file: str = Field(
        default=".queuedesk/session.json", validation_alias="SESSION_FILE",
    )

    # Redis - optional shared session storage
    redis_url: str = Field(default="redis://localhost:6379", validation_alias="REDIS_URL")
    redis_enabled: bool = Field(default=False, validation_alias="REDIS_ENABLED")
    redis_pool_size: int = Field(default=10, validation_alias="REDIS_POOL_SIZE")
    redis_key_prefix: str = Field(default="queuedesk:session", validation_alias="REDIS_KEY_PREFIX")

    # Routes where a 401 must not force a redirect (comma-separated)
    auth_routes_str: str = Field(default="/login,/register", validation_alias="AUTH_ROUTES")

    # Seconds an unsubscribed query result is kept before eviction
    keep_unused_data_for: float = Field(default=60.0, ge=0, validation_alias="KEEP_UNUSED_DATA_FOR")

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @model_validator(mode="after")
    def validate_redis_storage(self) -> "Settings":
        """Redis session storage needs Redis to be enabled."""
        if self.session_storage == "redis" and not self.redis_enabled:
            raise ValueError(
                "SESSION_STORAGE=redis requires REDIS_ENABLED=true. "
                "Either enable Redis or use 'file' or 'memory' session storage.",
            )
        return self

    @property
    def auth_routes(self) -> list[str]:
        """Parse comma-separated auth routes string into a list."""
        if not self.auth_routes_str:
            return []
        return [route.strip() for route in self.auth_routes_str.split(",") if route.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
