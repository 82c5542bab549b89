# src/gateway_api/config/settings.py
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gateway_api.errors import ConfigurationError


QUEUE_REQUIRED_SETTINGS = (
    "aws_region",
    "aws_access_key_id",
    "aws_secret_access_key",
    "sqs_queue_url",
)

STORAGE_REQUIRED_SETTINGS = (
    "aws_region",
    "aws_access_key_id",
    "aws_secret_access_key",
    "s3_bucket_name",
)


class Settings(BaseSettings):
    """
    Single source of truth for all application settings.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from gateway_api.config.settings import get_settings
        settings = get_settings()
        queue_url = settings.sqs_queue_url
    """

    # Application Settings
    app_name: str = Field(
        default="s3-sqs-gateway",
        description="Application name"
    )

    version: str = Field(
        default="1.0.0",
        description="Version reported by the banner and health endpoints"
    )

    host: str = Field(
        default="0.0.0.0",
        alias="HOST"
    )

    port: int = Field(
        default=3000,
        alias="PORT"
    )

    cors_origins: List[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS"
    )

    # AWS Core Settings
    aws_region: Optional[str] = Field(
        default=None,
        alias="AWS_REGION"
    )

    aws_access_key_id: Optional[str] = Field(
        default=None,
        alias="AWS_ACCESS_KEY_ID"
    )

    aws_secret_access_key: Optional[str] = Field(
        default=None,
        alias="AWS_SECRET_ACCESS_KEY"
    )

    aws_endpoint_url: Optional[str] = Field(
        default=None,
        alias="AWS_ENDPOINT_URL",
        description="Override endpoint for local emulators"
    )

    # S3 Configuration
    s3_bucket_name: Optional[str] = Field(
        default=None,
        alias="AWS_S3_BUCKET_NAME",
        description="S3 bucket for uploads"
    )

    cloudfront_domain: Optional[str] = Field(
        default=None,
        alias="AWS_CLOUDFRONT_DOMAIN",
        description="CloudFront distribution in front of the bucket"
    )

    # SQS Configuration
    sqs_queue_url: Optional[str] = Field(
        default=None,
        alias="AWS_SQS_QUEUE_URL",
        description="Full SQS queue URL"
    )

    sqs_wait_time_seconds: int = Field(
        default=20,
        ge=0,
        le=20,
        alias="SQS_WAIT_TIME_SECONDS",
        description="Long-poll wait window for receive"
    )

    # Poller
    poller_enabled: bool = Field(
        default=True,
        alias="POLLER_ENABLED"
    )

    poll_max_messages: int = Field(
        default=5,
        ge=1,
        le=10,
        alias="POLL_MAX_MESSAGES"
    )

    poll_error_backoff_seconds: float = Field(
        default=5.0,
        ge=0,
        alias="POLL_ERROR_BACKOFF_SECONDS"
    )

    poller_shutdown_timeout_seconds: float = Field(
        default=25.0,
        ge=0,
        alias="POLLER_SHUTDOWN_TIMEOUT_SECONDS"
    )

    # Realtime
    realtime_send_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        alias="REALTIME_SEND_TIMEOUT_SECONDS",
        description="Longest a single client may take to accept a frame before it is dropped"
    )

    # Uploads
    upload_max_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Per-file upload limit (10MB)"
    )

    upload_max_files: int = Field(
        default=10,
        description="Maximum number of files per multi-upload request"
    )

    signed_url_expires_in: int = Field(
        default=3600,
        description="Default signed URL lifetime in seconds"
    )

    signed_url_max_expires_in: int = Field(
        default=7 * 24 * 60 * 60,
        description="Upper bound on signed URL lifetime (7 days)"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level"
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @field_validator("cloudfront_domain", "aws_endpoint_url", "sqs_queue_url", "s3_bucket_name")
    @classmethod
    def empty_string_is_unset(cls, v: Optional[str]) -> Optional[str]:
        """Treat `FOO=` in the environment the same as an absent variable."""
        if v is not None and not v.strip():
            return None
        return v

    def missing_settings(self, field_names) -> List[str]:
        """Return the environment variable names of required fields that are unset."""
        missing = []
        for name in field_names:
            if not getattr(self, name):
                field = type(self).model_fields[name]
                missing.append(field.alias or name.upper())
        return missing

    def require(self, field_names, purpose: str) -> None:
        """Raise ConfigurationError naming every missing variable needed for `purpose`."""
        missing = self.missing_settings(field_names)
        if missing:
            raise ConfigurationError(
                f"Missing required AWS {purpose} environment variables: {', '.join(missing)}"
            )

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
