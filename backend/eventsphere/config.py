"""Application configuration management."""
from pydantic_settings import BaseSettings
from functools import lru_cache
import subprocess
import logging


class Settings(BaseSettings):
    """Application settings."""

    # Database
    DATABASE_URL: str = "postgresql://localhost:5432/eventsphere"

    @property
    def async_database_url(self) -> str:
        """Get DATABASE_URL with asyncpg driver for async SQLAlchemy.

        Converts postgresql:// to postgresql+asyncpg:// automatically.
        This allows flexibility in how the DATABASE_URL is provided.
        """
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.DATABASE_URL

    # Application
    ENVIRONMENT: str = "development"  # development, staging, or production
    DEBUG: bool = False
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Transactions
    # "auto" probes the connected dialect, "enabled"/"disabled" force the mode
    DB_TRANSACTION_MODE: str = "auto"
    TRANSACTION_ISOLATION_LEVEL: str = "READ COMMITTED"
    CASCADE_TIMEOUT_SECONDS: float = 30.0

    # Lifecycle scheduler
    SCHEDULER_ENABLED: bool = True
    EVENT_STATUS_SYNC_INTERVAL_MINUTES: int = 5
    RECONCILE_TIMEOUT_SECONDS: float = 120.0
    DAILY_REPORT_INTERVAL_HOURS: int = 24
    USER_ACTIVITY_INTERVAL_HOURS: int = 24
    USER_INACTIVITY_DAYS: int = 90  # Users without a login for this long are marked inactive

    # Limits
    MAX_USERS_PER_EVENT: int = 500
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def get_version() -> str:
    """
    Get application version string.

    In staging: Returns version with commit hash (e.g., "v1.0.0+abc1234")
    In production: Returns clean version (e.g., "v1.0.0")
    """
    from eventsphere.version import VERSION

    settings = get_settings()
    version_str = f"v{VERSION}"

    if settings.ENVIRONMENT == "staging":
        try:
            commit_hash = subprocess.check_output(
                ["git", "rev-parse", "--short=7", "HEAD"],
                stderr=subprocess.DEVNULL,
                text=True
            ).strip()
            version_str = f"{version_str}+{commit_hash}"
        except (subprocess.CalledProcessError, FileNotFoundError):
            logger = logging.getLogger(__name__)
            logger.warning("Could not retrieve git commit hash for version string")

    return version_str
