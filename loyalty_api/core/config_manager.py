"""
Configuration Manager
--------------------
Centralized configuration management using Pydantic Settings.
All application settings are loaded from environment variables with validation.

JWT_SECRET_KEY has no default: a process started without it fails while
loading settings, before any request is served.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApplicationSettings(BaseSettings):
    """Main application configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application metadata
    app_name: str = Field(default="Loyalty Points API", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    # FastAPI server configuration
    fastapi_host: str = Field(default="0.0.0.0", description="FastAPI host")
    fastapi_port: int = Field(default=8000, description="FastAPI port")
    frontend_url: str = Field(
        default="http://localhost:3000", description="Allowed CORS origin"
    )

    # PostgreSQL database configuration
    database_host: str = Field(default="localhost", description="PostgreSQL host")
    database_port: int = Field(default=5432, description="PostgreSQL port")
    database_user: str = Field(default="myuser", description="PostgreSQL user")
    database_password: str = Field(
        default="mypassword", description="PostgreSQL password"
    )
    database_name: str = Field(default="loyalty", description="PostgreSQL database name")
    database_pool_size: int = Field(default=20, description="Connection pool size")
    database_max_overflow: int = Field(
        default=10, description="Max overflow connections"
    )

    # JWT configuration
    jwt_secret_key: str = Field(
        ..., min_length=1, description="Process-wide JWT signing secret"
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_access_token_expire_seconds: int = Field(
        default=7200, description="Access token lifetime in seconds"
    )

    # Password reset configuration
    reset_token_expire_seconds: int = Field(
        default=3600, description="Password reset token lifetime in seconds"
    )
    reset_rate_limit_seconds: int = Field(
        default=60, description="Minimum seconds between reset requests per requester"
    )
    activation_token_expire_days: int = Field(
        default=7, description="Lifetime of the reset token issued with a new account"
    )
    default_superuser_utorid: str = Field(
        default="superadm", description="Account that can never be reset"
    )

    # Password hashing
    bcrypt_rounds: int = Field(default=12, description="bcrypt cost factor")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is acceptable."""
        valid_levels = ["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        """bcrypt accepts cost factors between 4 and 31."""
        if not 4 <= v <= 31:
            raise ValueError("bcrypt_rounds must be between 4 and 31")
        return v

    @field_validator(
        "jwt_access_token_expire_seconds",
        "reset_token_expire_seconds",
        "reset_rate_limit_seconds",
        "activation_token_expire_days",
    )
    @classmethod
    def validate_positive_duration(cls, v: int) -> int:
        """Durations must be positive."""
        if v <= 0:
            raise ValueError("Duration settings must be positive")
        return v


# Global settings instance
settings = ApplicationSettings()
