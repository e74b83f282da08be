"""Configuration objects for the clinic calendar portal."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Type

basedir = Path(__file__).resolve().parent


class Config:
    """Base configuration shared by all environments."""

    SQLALCHEMY_DATABASE_URI: str = os.getenv("DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-session-key")
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "dev-secret-key")
    BCRYPT_LOG_ROUNDS: int = int(os.getenv("BCRYPT_LOG_ROUNDS", "13"))
    CALENDAR_DEFAULT_TIMEZONE: str = os.getenv("CALENDAR_DEFAULT_TIMEZONE", "UTC")
    CALENDAR_LIST_LIMIT: int = int(os.getenv("CALENDAR_LIST_LIMIT", "50"))
    CALENDAR_DUPLICATE_TOLERANCE_MINUTES: int = int(
        os.getenv("CALENDAR_DUPLICATE_TOLERANCE_MINUTES", "5")
    )

    @classmethod
    def as_dict(cls) -> Dict[str, Any]:
        """Expose configuration values for debugging and introspection."""

        return {key: getattr(cls, key) for key in dir(cls) if key.isupper()}


class DevelopmentConfig(Config):
    """Configuration suitable for local development."""

    _db_path = basedir / "dev.db"
    SQLALCHEMY_DATABASE_URI = os.getenv("DEV_DATABASE_URL", f"sqlite:///{_db_path}")
    DEBUG = True


class ProductionConfig(Config):
    """Configuration tailored for production deployments."""

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///clinic_calendar.db")
    DEBUG = False


class TestingConfig(Config):
    """Configuration used by the test suite."""

    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-secret-key"
    SECRET_KEY = "test-session-key"
    BCRYPT_LOG_ROUNDS = 4
    TESTING = True
    DEBUG = False


CONFIG_MAP: Dict[str, Type[Config]] = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


def get_config(name: str | None) -> Type[Config]:
    """Retrieve the configuration class matching the supplied name."""

    if not name:
        return DevelopmentConfig
    return CONFIG_MAP.get(name.lower(), DevelopmentConfig)
