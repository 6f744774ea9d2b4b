"""
Gateway settings loaded from environment variables.
Uses pydantic-settings for type-safe configuration.

Priority (lowest to highest): field defaults, .env file,
OSC2WS_* environment variables, explicit keyword arguments (CLI options).
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Gateway settings with defaults matching the classic osc2ws ports."""

    # OSC input (UDP)
    osc_host: str = "127.0.0.1"
    osc_port: int = Field(default=57121, ge=0, le=65535)

    # WebSocket output
    ws_host: str = "localhost"
    ws_port: int = Field(default=8080, ge=0, le=65535)

    # Logging
    verbose: bool = False  # Emit per-message and per-connection DEBUG records
    log_format: Literal["text", "json"] = "text"

    model_config = SettingsConfigDict(
        env_prefix="OSC2WS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )

    def describe(self) -> dict[str, object]:
        """Flat view of the effective configuration for the startup log."""
        return {
            "osc": f"{self.osc_host}:{self.osc_port}",
            "websocket": f"{self.ws_host}:{self.ws_port}",
            "verbose": self.verbose,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
