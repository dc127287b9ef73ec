"""
Settings for the counseling assessment engine, read from the environment.

``APP_ENVIRONMENT`` (development, testing, production) is the single
environment switch; it picks the logging defaults that ``LOG_*`` variables
do not override.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

Environment = Literal["development", "testing", "production"]

IN_MEMORY = ":memory:"


class DatabaseConfig(BaseSettings):
    """
    Where assessment definitions and member activity are stored.

    Example:
        >>> DatabaseConfig(backend="sqlite", sqlite_path="./counsel").get_connection_url()
        'sqlite:///counsel.db'
    """

    backend: Literal["sqlite", "mysql"] = "sqlite"
    sqlite_path: str = Field("./counsel.db", description="SQLite file, or :memory:")

    mysql_host: str = "localhost"
    mysql_port: int = Field(3306, ge=1, le=65535)
    mysql_user: str = "root"
    mysql_password: str = ""
    mysql_database: str = "counsel"

    pool_recycle: int = Field(3600, ge=60, description="Seconds before a pooled connection is recycled")
    echo: bool = False

    model_config = {"env_prefix": "DB_", "case_sensitive": False}

    @field_validator("sqlite_path")
    def add_db_suffix(cls, v: str) -> str:
        if v != IN_MEMORY and not Path(v).suffix:
            return str(Path(v).with_suffix(".db"))
        return v

    @model_validator(mode="after")
    def require_mysql_location(self):
        if self.backend == "mysql":
            missing = [
                name
                for name in ("mysql_host", "mysql_user", "mysql_database")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"MySQL backend requires: {', '.join(missing)}")
        return self

    @property
    def in_memory(self) -> bool:
        return self.backend == "sqlite" and self.sqlite_path == IN_MEMORY

    def get_connection_url(self) -> str:
        if self.backend == "sqlite":
            return f"sqlite:///{self.sqlite_path}"
        password = f":{self.mysql_password}" if self.mysql_password else ""
        return (
            f"mysql+pymysql://{self.mysql_user}{password}@{self.mysql_host}:"
            f"{self.mysql_port}/{self.mysql_database}?charset=utf8mb4"
        )

    def get_engine_options(self) -> dict[str, Any]:
        return {"echo": self.echo, "pool_pre_ping": True, "pool_recycle": self.pool_recycle}


class LoggingConfig(BaseSettings):
    """Handlers installed by ``configure_logging``."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file_path: str | None = Field(None, description="Rotating JSON log file; no file when unset")
    max_bytes: int = Field(10 * 1024 * 1024, ge=1024)
    backup_count: int = Field(5, ge=1)
    structured: bool = Field(True, description="JSON lines on the console instead of plain text")
    console_enabled: bool = True

    model_config = {"env_prefix": "LOG_", "case_sensitive": False}


# Applied only to fields not given through LOG_* variables.
LOGGING_DEFAULTS: dict[str, dict[str, Any]] = {
    "development": {"level": "DEBUG", "structured": False},
    "testing": {"level": "WARNING", "console_enabled": False},
    "production": {"level": "INFO"},
}


class ApplicationConfig(BaseSettings):
    """
    Service identity and progress-analytics defaults.

    Example:
        >>> ApplicationConfig().progress_window_days
        90
    """

    environment: Environment = "development"
    debug: bool = False
    version: str = "0.1.0"
    title: str = "Counsel Assessment Engine"

    progress_window_days: int = Field(
        90, ge=1, le=3650, description="Trailing window for progress overview trends (days)"
    )
    tracked_assessments: dict[str, str] = Field(
        default_factory=lambda: {"phq-9": "PHQ-9", "gad-7": "GAD-7"},
        description="Assessment key -> display label for the progress overview",
    )

    model_config = {"env_prefix": "APP_", "case_sensitive": False}

    @model_validator(mode="after")
    def no_debug_in_production(self):
        if self.debug and self.environment == "production":
            raise ValueError("Debug mode cannot be enabled in production")
        return self


class Settings:
    """Lazily loaded settings sections."""

    def __init__(self):
        self._app: ApplicationConfig | None = None
        self._database: DatabaseConfig | None = None
        self._logging: LoggingConfig | None = None

    @property
    def app(self) -> ApplicationConfig:
        if self._app is None:
            self._app = ApplicationConfig()
        return self._app

    @property
    def database(self) -> DatabaseConfig:
        if self._database is None:
            self._database = DatabaseConfig()
        return self._database

    @property
    def logging(self) -> LoggingConfig:
        if self._logging is None:
            config = LoggingConfig()
            defaults = LOGGING_DEFAULTS[self.app.environment]
            unset = {k: v for k, v in defaults.items() if k not in config.model_fields_set}
            if self.app.debug and "level" not in config.model_fields_set:
                unset["level"] = "DEBUG"
            self._logging = config.model_copy(update=unset)
        return self._logging

    def is_development(self) -> bool:
        return self.app.environment == "development"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def override_settings(**kwargs: Any) -> Settings:
    """
    Set environment variables and rebuild the settings.

    Example:
        >>> settings = override_settings(app_environment="testing", log_level="ERROR")
    """
    for key, value in kwargs.items():
        os.environ[key.upper()] = str(value)

    get_settings.cache_clear()
    return get_settings()


def reset_settings() -> None:
    get_settings.cache_clear()
