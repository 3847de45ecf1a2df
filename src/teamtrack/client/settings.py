"""Device-side settings.

Everything a device used to keep in ambient local storage (its id, the
last game it opened, the poll interval) is an explicit value here and is
passed into ``DeviceSession`` and ``SyncPoller`` when they are built.
"""

from __future__ import annotations

import secrets

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _new_device_id() -> str:
    return secrets.token_hex(5)


class ClientSettings(BaseSettings):
    """Device configuration loaded from environment variables with TEAMTRACK_CLIENT_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="TEAMTRACK_CLIENT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    api_base_url: str = "http://localhost:8000"
    request_timeout_seconds: float = 10.0
    device_id: str = Field(default_factory=_new_device_id)
    user_name: str = "Anonymous"
    last_game_id: str | None = None

    # --- Sync ---
    sync_interval_seconds: float = Field(10.0, gt=0)

    # --- Gameplay policy (mirrors the server default) ---
    default_reveal_radius_m: float = Field(100.0, gt=0)
