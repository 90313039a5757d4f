"""Configuration management for GroupLedger."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GROUP_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Display settings
    default_currency: str = "$"  # Symbol for new groups, never converted

    # Member recorded as the actor on activity entries when --by is omitted
    actor_id: str = ""

    # Database path
    database_path: Path = Path.home() / ".group_ledger" / "group_ledger.db"

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check the GROUP_LEDGER_* variables in "
            f"your environment or .env file.\n"
            f"Error: {e}"
        ) from e
