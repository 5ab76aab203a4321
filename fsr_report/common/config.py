"""
Report Service Configuration Module

Centralized configuration management with Pydantic validation.
All environment variables are validated at startup to catch misconfigurations early.

Settings are built once at process start and handed to each component
explicitly; business logic never reaches for a global settings object.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "report" / "templates"

_LOCAL_ALIASES = {"local", "dev", "development"}
_HOSTED_ALIASES = {"hosted", "production", "prod", "staging", "lambda"}


class ReportSettings(BaseSettings):
    """
    Report service configuration with validation.

    All settings can be overridden via environment variables (or a .env file).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Runtime ===
    environment: str = Field(
        default="local",
        description="Runtime environment: local (developer machine) or hosted (platform bundled Chromium)"
    )
    stage: str = Field(default="dev", description="Deployment stage label")

    # === AWS / S3 ===
    aws_region: str = Field(default="us-east-1")
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    s3_bucket: Optional[str] = Field(default=None)
    s3_endpoint_url: Optional[str] = Field(default=None, description="Custom endpoint (MinIO, LocalStack)")
    s3_force_path_style: bool = Field(default=False)
    storage_prefix: str = Field(default="fsr", description="Key prefix; objects land under <prefix>/<YYYY>/")

    # === Rendering ===
    fsr_reattempt_timeout: int = Field(
        default=5000,
        ge=0,
        le=60000,
        description="Back-off in milliseconds before the single export retry"
    )
    presigned_url_expire: int = Field(
        default=3600,
        ge=60,
        le=604800,
        description="Presigned URL lifetime in seconds"
    )
    playwright_timeout: int = Field(
        default=30000,
        ge=1000,
        description="Default Playwright page timeout in milliseconds"
    )
    render_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        le=900,
        description="Hard wall-clock deadline for a single render"
    )
    browser_executable_path: Optional[str] = Field(default=None)
    use_executable_path: bool = Field(
        default=False,
        description="Use browser_executable_path instead of probing in local mode"
    )
    hosted_chromium_path: str = Field(
        default="/opt/chromium/chromium",
        description="Executable of the platform-provided bundled Chromium"
    )
    min_part_rows: int = Field(default=3, ge=0, le=50)
    page_format: str = Field(default="A4")
    template_dir: Path = Field(default=DEFAULT_TEMPLATE_DIR)

    # === HTTP ===
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )

    # === Logging ===
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="simple")
    debug_mode: bool = Field(default=False)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Normalize environment aliases to local or hosted."""
        v_lower = v.strip().lower()
        if v_lower in _LOCAL_ALIASES:
            return "local"
        if v_lower in _HOSTED_ALIASES:
            return "hosted"
        allowed = sorted(_LOCAL_ALIASES | _HOSTED_ALIASES)
        raise ValueError(f"environment must be one of: {', '.join(allowed)}")

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Only simple and json formats are supported."""
        v_lower = v.lower()
        if v_lower not in {"simple", "json"}:
            raise ValueError("log_format must be 'simple' or 'json'")
        return v_lower

    @field_validator("storage_prefix")
    @classmethod
    def strip_prefix_slashes(cls, v: str) -> str:
        """Keys are built as <prefix>/<YYYY>/<file>; keep the prefix bare."""
        return v.strip("/")

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        if not self.cors_origins:
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_local(self) -> bool:
        """Check if running on a developer machine."""
        return self.environment == "local"

    @property
    def is_s3_configured(self) -> bool:
        """S3 uploads need a bucket and a credential pair."""
        return bool(self.s3_bucket and self.aws_access_key_id and self.aws_secret_access_key)

    @property
    def reattempt_delay_seconds(self) -> float:
        """Export retry back-off in seconds."""
        return self.fsr_reattempt_timeout / 1000

    def validate_hosted_config(self) -> List[str]:
        """
        Validate configuration is suitable for hosted mode.

        Returns list of warning/error messages.
        """
        issues = []

        if not self.is_local:
            if not self.is_s3_configured:
                missing = [
                    name.upper()
                    for name in ("s3_bucket", "aws_access_key_id", "aws_secret_access_key")
                    if not getattr(self, name)
                ]
                issues.append(f"CRITICAL: Missing required configuration: {', '.join(missing)}")
            if self.use_executable_path:
                issues.append("WARNING: USE_EXECUTABLE_PATH is ignored in hosted mode")

        return issues

    def summary(self) -> dict:
        """Non-secret configuration summary for health checks and startup logs."""
        return {
            "stage": self.stage,
            "environment": self.environment,
            "s3_configured": self.is_s3_configured,
            "logs_enabled": self.debug_mode,
            "region": self.aws_region,
            "bucket": self.s3_bucket,
        }


@lru_cache()
def get_settings() -> ReportSettings:
    """
    Get cached settings instance.

    Only the application entry point calls this; components receive the
    instance as a constructor argument.
    """
    return ReportSettings()


def validate_config_on_startup(settings: ReportSettings) -> None:
    """
    Validate configuration at application startup.

    Raises ValueError with details if config is invalid.
    Logs warnings for non-critical issues.
    """
    issues = settings.validate_hosted_config()

    for issue in issues:
        if issue.startswith("CRITICAL"):
            raise ValueError(issue)
        else:
            logger.warning(issue)

    logger.info(f"Configuration loaded: environment={settings.environment} stage={settings.stage}")
    logger.info(f"  s3_configured={settings.is_s3_configured} bucket={settings.s3_bucket}")
    logger.info(f"  reattempt_timeout={settings.fsr_reattempt_timeout}ms")
    logger.info(f"  render_timeout={settings.render_timeout_seconds}s")
