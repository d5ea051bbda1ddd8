"""
Configuration

Settings are read once from environment variables and validated at startup
so a misconfigured deployment fails fast.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from errors import ConfigurationError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
ENVIRONMENTS = ["development", "test", "production"]
DEFAULT_SESSION_SECRET = "supersecret"


class Settings(BaseModel):
    environment: Literal["development", "test", "production"] = "development"
    host: str = "0.0.0.0"
    port: int = Field(8000, ge=1, le=65535)
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "pizza_shop"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    session_secret: str = DEFAULT_SESSION_SECRET
    log_level: str = "INFO"
    log_file: Optional[str] = None
    bcrypt_rounds: int = Field(12, ge=4, le=31)
    reset_token_ttl_hours: int = Field(24, ge=1)

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def load_settings() -> Settings:
    """Load settings from the environment.

    Raises:
        ConfigurationError: if any variable holds an invalid value
    """
    try:
        environment = os.getenv("ENVIRONMENT", "development").lower()
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        if environment not in ENVIRONMENTS:
            raise ValueError(f"Invalid environment: {environment}")
        if log_level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {log_level}")

        origins = [o.strip() for o in os.getenv("CORS_ORIGIN", "*").split(",") if o.strip()]

        settings = Settings(
            environment=environment,
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            database_url=os.getenv("DATABASE_URL", "mongodb://localhost:27017"),
            database_name=os.getenv("DATABASE_NAME", "pizza_shop"),
            cors_origins=origins or ["*"],
            session_secret=os.getenv("SESSION_SECRET", DEFAULT_SESSION_SECRET),
            log_level=log_level,
            log_file=os.getenv("LOG_FILE") or None,
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "12")),
            reset_token_ttl_hours=int(os.getenv("RESET_TOKEN_TTL_HOURS", "24")),
        )
    except Exception as e:
        raise ConfigurationError(f"Failed to load configuration: {e}") from e

    if settings.is_production and settings.session_secret == DEFAULT_SESSION_SECRET:
        raise ConfigurationError("SESSION_SECRET must be set in production")
    return settings


def configure_logging(settings: Settings) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        # 20 MB per file, five backups
        handlers.append(
            RotatingFileHandler(settings.log_file, maxBytes=20 * 1024 * 1024, backupCount=5)
        )
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    logger.info(f"Running with configuration: {settings.environment}")
