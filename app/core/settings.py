"""
Configuration & Environment Management for the campus ticketing service
"""

import logging
import secrets
from functools import lru_cache
from typing import List, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings as PydanticBaseSettings
from pydantic_settings import SettingsConfigDict

logger = logging.getLogger(__name__)


class DatabaseSettings(PydanticBaseSettings):
    """Database configuration settings"""

    # Full URL wins over the individual PostgreSQL parts below
    DB_URL: Optional[str] = "sqlite+aiosqlite:///./ticketing.sqlite3"

    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_NAME: str = "ticketing"
    DB_SSL: bool = False

    # Connection Pool Settings
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 30
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600
    DB_POOL_PRE_PING: bool = True
    DB_ECHO: bool = False

    # Bounded waits; a writer never blocks longer than these
    DB_COMMAND_TIMEOUT: int = 60
    DB_STATEMENT_TIMEOUT: str = "30s"
    DB_LOCK_TIMEOUT: str = "5s"
    DB_IDLE_IN_TRANSACTION_TIMEOUT: str = "1min"
    SQLITE_BUSY_TIMEOUT_SECONDS: float = 5.0

    model_config = SettingsConfigDict(case_sensitive=True, extra="ignore")

    @property
    def database_url(self) -> str:
        """Generate database URL for async connections"""
        if self.DB_URL:
            return self.DB_URL
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"


class SecuritySettings(PydanticBaseSettings):
    """Security and authentication settings"""

    JWT_SECRET_KEY: str = secrets.token_urlsafe(32)
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    PASSWORD_MIN_LENGTH: int = 8

    # Session cookie carrying the bearer token
    SESSION_COOKIE_NAME: str = "token"
    SESSION_COOKIE_SECURE: bool = False
    SESSION_COOKIE_SAMESITE: str = "lax"

    model_config = SettingsConfigDict(case_sensitive=True, extra="ignore")


class MonitoringSettings(PydanticBaseSettings):
    """Monitoring and observability settings"""

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    ENABLE_PROMETHEUS: bool = True
    SLOW_REQUEST_THRESHOLD_SECONDS: float = 1.0

    model_config = SettingsConfigDict(case_sensitive=True, extra="ignore")


class LLMSettings(PydanticBaseSettings):
    """Booking intent parser upstream (Ollama-compatible)"""

    LLM_BASE_URL: str = "http://localhost:11434"
    LLM_MODEL: str = "llama3.1:latest"
    LLM_TIMEOUT_SECONDS: float = 30.0

    model_config = SettingsConfigDict(case_sensitive=True, extra="ignore")


class Settings(PydanticBaseSettings):
    """Main application settings"""

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    VERSION: str = "1.0.0"

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "Campus Ticketing"

    # CORS Configuration
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, list):
            return v
        return []

    # Seeded on startup when both are set
    FIRST_SUPERUSER: Optional[str] = None
    FIRST_SUPERUSER_PASSWORD: Optional[str] = None

    # Upper bound for one purchase transaction, including lock waits
    PURCHASE_TIMEOUT_SECONDS: float = 10.0

    # Create tables on startup (SQLite development setups)
    CREATE_TABLES_ON_STARTUP: bool = True

    # Component Settings
    database: DatabaseSettings = DatabaseSettings()
    security: SecuritySettings = SecuritySettings()
    monitoring: MonitoringSettings = MonitoringSettings()
    llm: LLMSettings = LLMSettings()

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        validate_assignment=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
