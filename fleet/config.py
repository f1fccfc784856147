"""Configuration using Pydantic BaseSettings."""
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        arbitrary_types_allowed=True,
    )

    # Hosting settings
    DEBUG: bool = False
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # CORS settings (comma separated)
    FRONTEND_URLS: str = "http://localhost:5173"

    # Database settings
    DATABASE_URL: str

    # Redis settings, cache is disabled when unset
    REDIS_URL: Optional[str] = None

    # Auth settings
    JWT_SECRET: str
    JWT_REFRESH_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    BCRYPT_ROUNDS: int = 12

    # Day boundaries for status summaries and reports
    FLEET_TZ: ZoneInfo = ZoneInfo("UTC")

    @field_validator("DATABASE_URL")
    @classmethod
    def fix_database_url(cls, v: str) -> str:
        """Convert postgres:// to postgresql:// for SQLAlchemy compatibility."""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator("FLEET_TZ", mode="before")
    @classmethod
    def parse_timezone(cls, v):
        """Accept IANA timezone names from the environment."""
        if isinstance(v, str):
            try:
                return ZoneInfo(v)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.FRONTEND_URLS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
