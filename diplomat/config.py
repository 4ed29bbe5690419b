"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Diplomat configuration. All values come from environment variables."""

    # Anthropic
    anthropic_api_key: str = Field(default="")
    claude_model: str = Field(default="sonnet")
    llm_max_tokens: int = Field(default=1024)
    llm_timeout_seconds: float = Field(default=120.0)

    # Mediation
    context_window_size: int = Field(default=30)
    max_concurrent_analyses: int = Field(default=0)

    # Database
    database_path: Path = Field(default=Path("data/diplomat.db"))

    # Prompt and ground-rules markdown files
    config_dir: Path = Field(default=Path(__file__).resolve().parent.parent / "config")

    # Web
    web_host: str = Field(default="0.0.0.0")
    web_port: int = Field(default=8080)

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

    def get_analysis_limit(self) -> int | None:
        """Return the in-flight analysis bound, or None when unbounded."""
        if self.max_concurrent_analyses <= 0:
            return None
        return self.max_concurrent_analyses


settings = Settings()
