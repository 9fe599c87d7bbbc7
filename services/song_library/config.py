"""Environment-driven settings for the Song Library service"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings, read from the environment and an optional .env file"""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Service configuration
    service_name: str = "song-library"
    service_version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 8080

    # Metadata provider
    api_url: str = "http://localhost:8081"
    api_info_path: str = "/info"
    api_timeout: float = Field(default=10.0, gt=0)

    # Database configuration
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "songs"
    db_pool_min_size: int = Field(default=1, ge=0)
    db_pool_max_size: int = Field(default=10, ge=1)
    db_command_timeout: float = 30.0
    run_migrations: bool = False

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    cors_allowed_origins: str = "*"

    @property
    def database_dsn(self) -> str:
        return (
            f"postgresql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_allowed_origins.split(",") if origin.strip()]

    def safe_summary(self) -> dict:
        """Settings suitable for logging, with the database password masked"""
        return {
            "port": self.port,
            "api_url": self.api_url,
            "db_host": self.db_host,
            "db_port": self.db_port,
            "db_user": self.db_user,
            "db_password": mask_secret(self.db_password),
            "db_name": self.db_name,
        }


def mask_secret(value: str, show_chars: int = 4) -> str:
    """
    Mask secret for safe logging.

    Returns a string like "****cdef"; short values are fully masked.
    """
    if not value or len(value) <= show_chars:
        return "****"

    return "*" * (len(value) - show_chars) + value[-show_chars:]


@lru_cache
def get_settings() -> Settings:
    return Settings()
