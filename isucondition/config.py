"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Passed explicitly to the store and services; only `load_config_from_env` reads env
"""

import os
from functools import lru_cache
from typing import Literal, cast
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

logger = structlog.get_logger(__name__)


class DatabaseConfig(BaseModel):
    """Relational store configuration."""

    url: str = Field(
        default="sqlite+aiosqlite:///./isucondition.db", description="SQLAlchemy async database URL"
    )
    pool_size: int = Field(default=10, gt=0, description="Database connection pool size")
    max_overflow: int = Field(default=20, ge=0, description="Database connection pool overflow")
    pool_timeout: int = Field(default=30, gt=0, description="Database connection pool timeout")
    echo: bool = Field(default=False, description="Log every SQL statement")
    snapshot_isolation_level: str | None = Field(
        default=None,
        description="Isolation level for read snapshots, e.g. REPEATABLE READ on MySQL",
    )


class APIConfig(BaseModel):
    """Settings consumed by the request layer."""

    host: str = Field(default="0.0.0.0", description="API server host")
    port: int = Field(default=3000, gt=0, lt=65536, description="API server port")
    session_key: str = Field(default="isucondition", description="Session cookie secret")
    post_isucondition_target_base_url: str = Field(
        ..., description="Base URL devices post their conditions to once activated"
    )

    @field_validator("post_isucondition_target_base_url")
    def validate_target_base_url(cls, v):
        if not v:
            raise ValueError("missing: POST_ISUCONDITION_TARGET_BASE_URL")
        return v.rstrip("/")


class GraphConfig(BaseModel):
    """Dashboard graph and condition list settings."""

    timezone: str = Field(default="Asia/Tokyo", description="Timezone for day windows and labels")
    condition_list_limit: int = Field(
        default=20, gt=0, description="Maximum number of conditions returned per request"
    )
    expected_readings_per_hour: int | None = Field(
        default=None, gt=0, description="Readings a healthy Isu sends per hour"
    )

    @field_validator("timezone")
    def validate_timezone(cls, v):
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone: {v}") from e
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    api: APIConfig
    graph: GraphConfig = Field(default_factory=GraphConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""
    # Values already in the environment win over .env
    load_dotenv()

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _parse_bool(val: str | None, default: bool) -> bool:
        if val is None:
            return default
        return val.strip().lower() in {"1", "true", "yes", "on"}

    def _parse_optional_int(val: str | None) -> int | None:
        if val is None or not val.strip():
            return None
        return int(val)

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    database_config = DatabaseConfig(
        url=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./isucondition.db"),
        pool_size=int(os.getenv("DATABASE_POOL_SIZE", "10")),
        echo=_parse_bool(os.getenv("DATABASE_ECHO"), False),
        snapshot_isolation_level=os.getenv("DATABASE_SNAPSHOT_ISOLATION_LEVEL") or None,
    )

    api_config = APIConfig(
        host=os.getenv("SERVER_APP_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_APP_PORT", "3000")),
        session_key=os.getenv("SESSION_KEY", "isucondition"),
        post_isucondition_target_base_url=os.getenv("POST_ISUCONDITION_TARGET_BASE_URL", ""),
    )

    graph_config = GraphConfig(
        timezone=os.getenv("GRAPH_TIMEZONE", "Asia/Tokyo"),
        condition_list_limit=int(os.getenv("CONDITION_LIST_LIMIT", "20")),
        expected_readings_per_hour=_parse_optional_int(os.getenv("EXPECTED_READINGS_PER_HOUR")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        database=database_config,
        api=api_config,
        graph=graph_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def validate_config(config: AppConfig | None = None) -> AppConfig:
    """Validate configuration at startup; loads it from the environment when not given."""
    try:
        config = config or get_config()
    except ValueError as e:
        logger.error("configuration_invalid", error=str(e))
        raise

    logger.info(
        "configuration_loaded",
        environment=config.environment,
        graph_timezone=config.graph.timezone,
        database_url=config.database.url.split("@")[-1],
    )
    return config
