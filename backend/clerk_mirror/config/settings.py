"""
Environment-driven settings for the Clerk mirror service.

Settings are read once at process startup and handed to create_app();
request handlers never read the environment themselves.

Usage:
    from clerk_mirror.config.settings import Settings

    settings = Settings.from_env()
    app = create_app(settings=settings)
"""

import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Mapping

logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = ["http://localhost:3000"]


def _parse_int(raw: Optional[str], default: int, name: str) -> int:
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(
            "Invalid integer setting, using default",
            extra={"setting": name, "default": default},
        )
        return default


def normalize_database_url(database_url: Optional[str]) -> Optional[str]:
    """
    Normalise a database URL for SQLAlchemy.

    Hosting providers hand out postgres:// URLs; SQLAlchemy requires postgresql://.
    """
    if not database_url:
        return None
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql://", 1)
    return database_url


@dataclass(frozen=True)
class Settings:
    """Immutable process configuration."""

    database_url: Optional[str] = None
    clerk_webhook_secret: Optional[str] = None
    clerk_issuer_url: Optional[str] = None
    clerk_jwt_audience: Optional[str] = None
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"
    db_pool_size: int = 5
    db_max_overflow: int = 10

    @property
    def webhook_configured(self) -> bool:
        return bool(self.clerk_webhook_secret)

    @property
    def auth_configured(self) -> bool:
        return bool(self.clerk_issuer_url)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from; defaults to os.environ

        Returns:
            Settings instance
        """
        env = os.environ if environ is None else environ

        cors_raw = env.get("CORS_ORIGINS")
        if cors_raw:
            cors_origins = [origin.strip() for origin in cors_raw.split(",") if origin.strip()]
        else:
            cors_origins = list(DEFAULT_CORS_ORIGINS)

        return cls(
            database_url=normalize_database_url(env.get("DATABASE_URL")),
            clerk_webhook_secret=env.get("CLERK_WEBHOOK_SECRET") or None,
            clerk_issuer_url=env.get("CLERK_ISSUER_URL") or None,
            clerk_jwt_audience=env.get("CLERK_JWT_AUDIENCE") or None,
            cors_origins=cors_origins,
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
            db_pool_size=_parse_int(env.get("DB_POOL_SIZE"), 5, "DB_POOL_SIZE"),
            db_max_overflow=_parse_int(env.get("DB_MAX_OVERFLOW"), 10, "DB_MAX_OVERFLOW"),
        )
