"""Application settings with Pydantic validation."""

from functools import lru_cache
from typing import Any, Optional

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..environment import Environment
from ..exceptions import ConfigurationError


class StudyHallSettings(BaseSettings):
    """Renewal desk settings with validation and environment variable support."""

    # Facility API
    api_base_url: str = Field(
        default="http://localhost:5000/api", description="Base URL of the facility API"
    )
    api_token: Optional[SecretStr] = Field(
        default=None, description="Bearer token sent with every API request"
    )
    request_timeout: float = Field(
        default=30.0, gt=0, le=300, description="Total request timeout in seconds"
    )

    # Environment
    env: str = Field(
        default="production", description="Environment (production, development, testing)"
    )

    @model_validator(mode="before")
    @classmethod
    def default_env_for_pytest(cls, data: Any) -> Any:
        """Auto-detect testing environment when running under pytest."""
        import sys

        if not isinstance(data, dict):
            return data

        if ("env" not in data or not data.get("env")) and "pytest" in sys.modules:
            data["env"] = "testing"

        return data

    # Renewal defaults
    default_membership_months: int = Field(
        default=1, ge=1, le=24, description="Length of a renewed membership in months"
    )

    # Logging
    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_json: bool = Field(default=True, description="Write the log file as JSON lines")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v: str) -> str:
        """Validate API URL scheme and strip the trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("API_BASE_URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment name."""
        v = v.lower()
        if v not in Environment.VALID:
            raise ValueError(f"Invalid environment. Must be one of: {sorted(Environment.VALID)}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.env == Environment.PRODUCTION


@lru_cache(maxsize=1)
def get_settings() -> StudyHallSettings:
    """Get the cached settings instance."""
    return StudyHallSettings()


def load_settings() -> StudyHallSettings:
    """
    Get the settings, reporting invalid values as a configuration error.

    Raises:
        ConfigurationError: If an environment variable or .env value is invalid
    """
    try:
        return get_settings()
    except PydanticValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        raise ConfigurationError(
            f"Invalid configuration: {', '.join(fields) or 'settings'}",
            details={"fields": fields},
        ) from e
