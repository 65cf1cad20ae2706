from pathlib import Path

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """
    Application configuration loaded from environment variables and .env file.
    """

    # Data directory and file paths
    data_dir: Path = Field(default=Path("data"), alias="DATA_DIR")

    tasks_path: Path = Field(
        default=Path("data") / "tasks.json",
        alias="TASKS_PATH",
    )
    execution_log_path: Path = Field(
        default=Path("data") / "execution_log.json",
        alias="EXECUTION_LOG_PATH",
    )

    # Gmail OAuth
    gmail_credentials_path: Path = Field(
        default=Path("credentials.json"),
        alias="GMAIL_CREDENTIALS_PATH",
    )
    gmail_token_path: Path = Field(
        default=Path("token.json"),
        alias="GMAIL_TOKEN_PATH",
    )

    # LLM
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    model_name: str = Field(default="gpt-4o", alias="MODEL_NAME")
    llm_base_url: str = Field(
        default="https://api.openai.com/v1/chat/completions",
        alias="LLM_BASE_URL",
    )
    llm_timeout_seconds: float = Field(default=60.0, alias="LLM_TIMEOUT_SECONDS")

    # Refresh pipeline
    max_emails_per_run: int = Field(
        default=20,
        ge=1,
        alias="MAX_EMAILS_PER_RUN",
    )
    body_char_limit: int = Field(
        default=2000,
        ge=0,
        alias="BODY_CHAR_LIMIT",
    )
    skip_known_messages: bool = Field(default=True, alias="SKIP_KNOWN_MESSAGES")
    extraction_workers: int = Field(default=1, ge=1, alias="EXTRACTION_WORKERS")

    # Recurring trigger: minute of every hour
    refresh_minute: int = Field(default=0, ge=0, le=59, alias="REFRESH_MINUTE")

    # Root log level name (DEBUG, INFO, WARNING, ...)
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, v: str) -> str:
        name = v.strip().upper()
        if not isinstance(logging.getLevelName(name), int):
            raise ValueError(f"unknown log level {v!r}")
        return name


def load_config() -> "Config":
    return Config()
