"""
Application settings loaded from environment variables.
Uses pydantic-settings for type-safe configuration.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from admin_shared.config.constants import Limits


class Settings(BaseSettings):
    """Application settings with defaults for development."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite:///./resource_admin.db"
    database_echo: bool = False

    # HTTP boundary
    api_prefix: str = "/admin"
    rest_api_host: str = "127.0.0.1"
    rest_api_port: int = 8000

    # App factory inputs (JSON list, e.g. RESOURCE_MODULES='["blog.admin"]')
    resource_modules: list[str] = []
    create_tables: bool = False

    # Listing defaults (overridable per resource descriptor)
    default_per_page: int = Field(default=Limits.DEFAULT_PAGE_SIZE, ge=1)
    max_per_page: int = Field(default=Limits.MAX_PAGE_SIZE, ge=1)

    # Authentication/authorization are external collaborators; these only
    # decide whether the boundary consults them.
    authentication_enabled: bool = False
    authorization_enabled: bool = False

    # Environment
    environment: str = "development"
    debug: bool = True

    # Logging: LOG_LEVEL applies when DEBUG is off; LOG_FORMAT auto means
    # JSON in production and colored text elsewhere.
    log_level: str = "INFO"
    log_format: Literal["auto", "json", "text"] = "auto"

    def validate_production_settings(self) -> list[str]:
        """
        Validate settings that must be changed before running in production.
        Returns a list of problems. Empty list means all checks pass.
        """
        errors = []

        if self.environment == "production":
            if self.debug:
                errors.append("DEBUG must be False in production")

            if self.database_url.startswith("sqlite"):
                errors.append("DATABASE_URL must not point at SQLite in production")

            if not self.authentication_enabled:
                errors.append(
                    "AUTHENTICATION_ENABLED must be True in production"
                )

        if self.default_per_page < 1 or self.default_per_page > self.max_per_page:
            errors.append(
                "DEFAULT_PER_PAGE must be between 1 and MAX_PER_PAGE"
            )

        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience exports
settings = get_settings()

DATABASE_URL = settings.database_url
