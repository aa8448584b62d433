from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import List, Optional
import secrets

class Settings(BaseSettings):
    """
    Application settings.

    Values are loaded from:
    1. Environment variables
    2. The .env file (if present)
    3. Defaults declared here
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    ENVIRONMENT: str = "development"  # development, staging, production
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    SERVICE_NAME: str = "songrank-api"

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = ["development", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"ENVIRONMENT must be one of: {allowed}")
        return v

    DATABASE_URL: str

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Accepts Postgres URLs, and SQLite for local runs and tests."""
        if not v:
            raise ValueError("DATABASE_URL is required")

        if not v.startswith(("postgresql://", "postgres://", "sqlite:")):
            raise ValueError("DATABASE_URL must be a PostgreSQL or SQLite URL")

        # SQLAlchemy only knows the postgresql:// scheme
        if v.startswith("postgres://"):
            v = "postgresql://" + v[len("postgres://"):]

        return v

    SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        if len(v) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters long")
        return v

    @classmethod
    def generate_secret_key(cls) -> str:
        """Helper to generate a safe SECRET_KEY (use during setup)."""
        return secrets.token_urlsafe(32)

    # YOUTUBE

    YOUTUBE_WATCH_URL: str = "https://www.youtube.com/watch?v="
    YOUTUBE_THUMBNAIL_URL: str = "https://img.youtube.com/vi/{video_id}/hqdefault.jpg"
    YOUTUBE_FETCH_TIMEOUT_SECONDS: float = 10.0
    YOUTUBE_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    )

    @field_validator("YOUTUBE_FETCH_TIMEOUT_SECONDS")
    @classmethod
    def validate_fetch_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("YOUTUBE_FETCH_TIMEOUT_SECONDS must be positive")
        return v

    # SONGS / PAGINATION

    DEFAULT_ARTIST: str = "Tião Carreiro & Pardinho"
    TOP_SONGS_LIMIT: int = 5
    REMAINING_PAGE_SIZE: int = 10
    STATUS_PAGE_SIZE: int = 10
    LIST_PAGE_SIZE: int = 15
    MAX_PAGE_SIZE: int = 100

    CORS_ORIGINS: str = "*"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parses CORS_ORIGINS into a list."""
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    FRONTEND_DIR: str = "frontend/dist"

    # Seed admin (development only)
    ADMIN_EMAIL: str = "admin@songrank.io"
    ADMIN_NAME: str = "Administrator"
    ADMIN_PASSWORD: Optional[str] = None

    # Helpers

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    def model_dump_safe(self) -> dict:
        """Config dump WITHOUT secrets (for logging)."""
        config = self.model_dump()
        sensitive_keys = ["SECRET_KEY", "ADMIN_PASSWORD", "DATABASE_URL"]
        for key in sensitive_keys:
            if key in config:
                config[key] = "***HIDDEN***"
        return config


settings = Settings()

def validate_settings():
    """Validates critical settings on application startup."""
    errors = []

    if settings.SECRET_KEY == "changeme" or len(settings.SECRET_KEY) < 32:
        errors.append("SECRET_KEY is insecure or too short")

    if settings.is_production and settings.DEBUG:
        errors.append("DEBUG must be False in production")

    if settings.is_production and settings.CORS_ORIGINS == "*":
        errors.append("CORS_ORIGINS should not be '*' in production")

    if settings.TOP_SONGS_LIMIT < 1:
        errors.append("TOP_SONGS_LIMIT must be at least 1")

    if errors:
        raise ValueError(f"Settings validation failed:\n" + "\n".join(f"  - {e}" for e in errors))
