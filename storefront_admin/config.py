import os
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings  # Configuration


class Settings(BaseSettings):
    """Application settings."""

    postgres_user: str = os.getenv("POSTGRES_USER", "postgres")
    postgres_password: str = os.getenv("POSTGRES_PASSWORD", "postgres")
    postgres_host: str = os.getenv("POSTGRES_HOST", "localhost")
    postgres_port: str = os.getenv("POSTGRES_PORT", "5432")
    postgres_db: str = os.getenv("POSTGRES_DB", "storefront_admin")
    database_url_override: Optional[str] = os.getenv("DATABASE_URL")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_timezone: str = os.getenv("APP_TIMEZONE", "America/Los_Angeles")
    low_stock_threshold: int = int(os.getenv("LOW_STOCK_THRESHOLD", "10"))
    default_per_page: int = int(os.getenv("DEFAULT_PER_PAGE", "15"))
    max_per_page: int = int(os.getenv("MAX_PER_PAGE", "100"))
    app_port: int = int(os.getenv("APP_PORT", "8000"))

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}@"
            f"{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


settings = Settings()


def current_time() -> datetime:
    """Timezone-aware now in the configured application timezone."""
    return datetime.now(ZoneInfo(settings.app_timezone))
