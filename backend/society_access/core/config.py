"""Application configuration with validation."""

from enum import Enum
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_JWT_SECRET = "dev-insecure-key-change-me"


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ConfigurationError(Exception):
    """Raised when application configuration is invalid for the environment."""
    pass


class Settings(BaseSettings):
    """
    Application settings, read from the environment and ``.env``.

    Everything the permission service needs at runtime lives here: database,
    token signing, CORS, logging, the admin menu base path and seeding.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/production)"
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./society_access.db",
        description="Database connection URL"
    )
    # Pool tuning, ignored for SQLite.
    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)
    db_pool_timeout: int = Field(default=30)
    db_pool_recycle: int = Field(default=1800)

    # CORS
    cors_allowed_origins: str = Field(
        default="http://localhost:5173,http://localhost:8080",
        description="Allowed CORS origins (comma-separated)"
    )

    # Authentication
    jwt_secret_key: str = Field(
        default=_DEFAULT_JWT_SECRET,
        description="JWT signing secret (override in production)"
    )
    jwt_algorithm: str = Field(default="HS256")
    token_expire_hours: int = Field(
        default=24,
        description="Lifetime of issued login tokens in hours"
    )

    # The administration API is guarded per area by the menus
    # <system_management_path>/roles, /actions, /menus, /menu-actions,
    # /permissions and /users.
    system_management_path: str = Field(
        default="/system-management",
        description="Base path of the administration menus"
    )
    admin_role_name: str = Field(
        default="Administrator",
        description="Role given to the very first registered account"
    )

    # Seeding
    seed_defaults: bool = Field(
        default=True,
        description="Seed the default actions, roles, menus and grants into an empty database"
    )

    # Audit
    audit_retention_days: int = Field(
        default=365,
        description="Days to keep audit log entries (0 = keep forever)"
    )

    # Rate limiting
    rate_limit_per_minute: int = Field(
        default=120,
        description="Maximum requests per client per minute (0 = unlimited)"
    )
    login_rate_limit_per_minute: int = Field(
        default=20,
        description="Maximum login attempts per client per minute (0 = unlimited)"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    def get_cors_origins(self) -> List[str]:
        """Parse the comma-separated origin list. Wildcards are refused."""
        origins = [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]
        if "*" in origins:
            raise ValueError(
                "Wildcard CORS (*) not allowed. "
                "Specify explicit origins in CORS_ALLOWED_ORIGINS"
            )
        return origins

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    @field_validator("system_management_path")
    @classmethod
    def validate_app_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("Application paths must start with '/'")
        return v

    def insecure_settings(self) -> list[str]:
        """Describe every setting that is unsafe outside development."""
        problems: list[str] = []
        if self.jwt_secret_key == _DEFAULT_JWT_SECRET:
            problems.append(
                "JWT_SECRET_KEY is using the default insecure value. "
                "Generate a secure key: openssl rand -hex 32"
            )
        localhost_origins = [
            o for o in self.get_cors_origins() if "localhost" in o or "127.0.0.1" in o
        ]
        if localhost_origins:
            problems.append(
                f"CORS allows localhost origins: {localhost_origins}. "
                "Remove localhost origins for production."
            )
        return problems

    def validate_production_config(self) -> None:
        """Fail startup in production when security-critical settings are defaults.

        Raises:
            ConfigurationError: If the environment is production and any
                insecure setting is present.
        """
        problems = self.insecure_settings()
        if problems and self.environment == Environment.PRODUCTION:
            raise ConfigurationError(
                "Production configuration is insecure:\n  - " + "\n  - ".join(problems)
            )


settings = Settings()
