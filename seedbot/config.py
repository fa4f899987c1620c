"""Bot configuration.

Settings are loaded once at startup and passed explicitly to every component.
The JSON config file uses hyphenated keys (``rtgg-host``); environment
variables use the ``SEEDBOT_`` prefix (``SEEDBOT_RTGG_HOST``).
"""

from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from seedbot.utils.json_utils import json_loads

DEFAULT_INTRO_MESSAGE = (
    "Welcome! I am your friendly randomizer bot. "
    "Type !seed to have me roll a randomizer seed for you."
)


class Settings(BaseSettings):
    """Bot settings."""

    # racetime.gg
    rtgg_host: str = Field(
        default="https://racetime.gg",
        description="Base URL for REST calls (listing, race detail, token)",
    )
    rtgg_websocket: str = Field(
        default="wss://racetime.gg",
        description="Base URL the race room bot endpoints are resolved against",
    )
    rtgg_game_tag: str = Field(
        ...,
        description="Category slug whose races are tracked (required)",
    )
    rtgg_game_track_categories: list[str] = Field(
        default_factory=list,
        description="Goal names to join; empty list joins every goal",
    )
    rtgg_game_track_custom: bool = Field(
        default=False,
        description="Join races with a custom goal",
    )

    # OAuth client credentials
    bot_client_id: str = Field(..., description="Bot client id (required)")
    bot_client_secret: str = Field(..., description="Bot client secret (required)")

    # Randomizer
    randomizer_web_host: str = Field(
        ...,
        description="Randomizer web host used to build seed URLs (required)",
    )
    bot_intro_message: str = DEFAULT_INTRO_MESSAGE

    # Timing
    discovery_interval_seconds: float = 10.0
    token_refresh_margin_seconds: int = 60
    token_retry_delay_seconds: float = 3.0
    http_timeout_seconds: float = 10.0
    ws_open_timeout_seconds: float = 10.0

    # Logging
    verbose_logging: bool = False
    log_json: bool = False

    @field_validator("randomizer_web_host", "rtgg_host", "rtgg_websocket")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Hosts are joined with absolute paths, so drop a trailing slash."""
        return v.rstrip("/")

    @field_validator("rtgg_game_track_categories")
    @classmethod
    def clean_categories(cls, v: list[str]) -> list[str]:
        return [name.strip() for name in v if name.strip()]

    @property
    def log_level(self) -> str:
        return "DEBUG" if self.verbose_logging else "INFO"

    model_config = SettingsConfigDict(
        env_prefix="SEEDBOT_",
        env_file=".env",
        extra="ignore",
        frozen=True,
    )


def normalize_config_keys(raw: dict[str, Any]) -> dict[str, Any]:
    """Map ``rtgg-host`` style keys onto field names."""
    return {key.replace("-", "_"): value for key, value in raw.items()}


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from a JSON config file, falling back to the environment.

    Args:
        config_path: Path to a ``config.json``. ``None`` reads only the
            environment and ``.env``.

    Returns:
        Immutable Settings instance

    Raises:
        FileNotFoundError: If ``config_path`` does not exist
        ValueError: If the file does not hold a JSON object
    """
    values: dict[str, Any] = {}
    if config_path is not None:
        path = Path(config_path)
        raw = json_loads(path.read_bytes())
        if not isinstance(raw, dict):
            raise ValueError(f"{path} must contain a JSON object")
        values = normalize_config_keys(raw)

    return Settings(**values)
