"""Configuration management for orgclock."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# orgclock config directory
ORGCLOCK_DIR = Path.home() / ".orgclock"
ORGCLOCK_ENV_FILE = ORGCLOCK_DIR / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ORGCLOCK_",
        # Later files override earlier ones
        env_file=(str(ORGCLOCK_ENV_FILE), ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Layout of newly created logbook drawers
    indent_mode: Literal["indent", "noindent"] = Field(
        default="noindent",
        description="'indent' indents new drawers by headline level + 1, 'noindent' keeps them flush",
    )
    drawer_name: str = Field(
        default="LOGBOOK",
        description="Name of the drawer holding clock lines",
    )

    # Clocking behavior
    clock_in_policy: Literal["close", "reject"] = Field(
        default="close",
        description="What clocking in does while a clock runs: close it first, or reject",
    )
    time_format: str = Field(
        default="HH:MM",
        description="Format used when rendering clock durations",
    )

    # File access
    lock_timeout: float = Field(
        default=10.0,
        description="Seconds to wait for the document file lock",
    )

    @property
    def drawer_start(self) -> str:
        """Opening delimiter line of the logbook drawer."""
        return f":{self.drawer_name}:"


# Global settings instance
settings = Settings()
