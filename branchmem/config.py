"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from branchmem.models import CorrelationScheme


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Conversation memory configuration. All values come from environment variables."""

    # Database
    database_path: Path = Field(default=Path("data/branchmem.db"))

    # Turso (hosted libSQL): overrides local database_path when set
    turso_database_url: str = Field(default="")
    turso_auth_token: str = Field(default="")

    # Memory module
    memory_enabled: bool = Field(default=True)
    correlation_scheme: CorrelationScheme = Field(default=CorrelationScheme.TURN)

    # Sessions
    default_agent_name: str = Field(default="Workflow Chat")
    auto_create_session: bool = Field(default=True)

    # Conversation window (number of human/AI exchanges handed to the model)
    context_window_length: int = Field(default=5, ge=1)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @property
    def uses_turso(self) -> bool:
        """True when a remote Turso database is configured."""
        return bool(self.turso_database_url.strip())


settings = Settings()
