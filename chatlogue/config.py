"""Configuration using Pydantic Settings for automatic env var support."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BATCH_SIZE = 5000
DEFAULT_DETECT_HEAD_BYTES = 8 * 1024
DEFAULT_HEADER_HEAD_BYTES = 2000


class ParserSettings(BaseSettings):
    """Process-wide parser defaults, overridable through ``CHATLOGUE_*`` variables."""

    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, gt=0)
    detect_head_bytes: int = Field(default=DEFAULT_DETECT_HEAD_BYTES, gt=0)
    header_head_bytes: int = Field(default=DEFAULT_HEADER_HEAD_BYTES, gt=0)
    log_json: bool = False
    verbose: bool = False

    model_config = SettingsConfigDict(env_prefix="CHATLOGUE_")


def get_settings() -> ParserSettings:
    """Read settings from the current environment."""
    return ParserSettings()
