"""Configuration management for the music catalog application."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file from config directory or project root
config_env = Path(__file__).parent.parent.parent / "config" / ".env"
if config_env.exists():
    load_dotenv(config_env)
else:
    load_dotenv()

AUDIO_EXTENSIONS = (
    ".mp3",
    ".m4a",
    ".flac",
    ".ogg",
    ".wav",
    ".aac",
    ".wma",
    ".aiff",
)


class Config:
    """Application configuration."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        # Library settings
        self.music_directory = Path(
            os.getenv(
                "MUSIC_CATALOG_MUSIC_DIRECTORY",
                str(Path.home() / "Music"),
            )
        ).expanduser()
        self.audio_extensions = AUDIO_EXTENSIONS

        # Database settings
        default_db_path = str(Path.home() / ".music-catalog" / "catalog.db")
        self.database_path = Path(
            os.getenv("MUSIC_CATALOG_DATABASE_PATH", default_db_path)
        ).expanduser()

        # Sync history retention
        self.sync_run_retention_days = int(
            os.getenv("MUSIC_CATALOG_SYNC_RUN_RETENTION_DAYS", "90")
        )

        # Logging
        log_file = os.getenv("MUSIC_CATALOG_LOG_FILE")
        self.log_file: Optional[Path] = (
            Path(log_file).expanduser() if log_file else None
        )

        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Ensure required directories exist."""
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def get_config() -> Config:
    """Get application configuration."""
    return Config()
