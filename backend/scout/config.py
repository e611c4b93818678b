"""
Knowledge Scout Backend - Application Configuration
===================================================

What:  Centralized server configuration using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
How:   Pydantic Settings reads environment variables (or .env), validates
       types/ranges, and provides a default `settings` object. The app
       factory and the lifecycle manager also accept an explicit Settings
       instance so tests can build independent servers side by side.
Who:   Imported by main.py, lifecycle.py and the services.
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

VALID_ENVIRONMENTS = {"development", "production", "test"}


class Settings(BaseSettings):
    """
    Server settings loaded from environment variables.

    All settings have development defaults. Production deployments MUST
    override JWT_SECRET and GEMINI_API_KEY.
    """

    # ── Server ────────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000, ge=0, le=65535)

    # What: Runtime environment flag
    # Controls error-detail verbosity: internal exception text is only
    # returned to clients outside production.
    environment: str = Field(default="development")

    log_level: str = Field(default="INFO")

    # What: Seconds uvicorn waits for in-flight requests after a signal
    shutdown_grace_seconds: float = Field(default=30.0, ge=0)

    # ── Database ──────────────────────────────────────────────────────────
    database_url: str = Field(
        default="sqlite+aiosqlite:///./knowledge_scout.db",
        description="Async SQLAlchemy connection URL",
    )
    db_pool_size: int = Field(default=10, ge=1, le=100)
    db_max_overflow: int = Field(default=10, ge=0, le=50)

    # ── Storage & body limits ─────────────────────────────────────────────
    storage_root: str = Field(default="./uploads")

    # 10MB: upload ceiling for documents
    max_upload_size: int = Field(default=10_485_760, ge=1024)

    # 10MB: ceiling for JSON request bodies read by the body parser
    json_body_limit: int = Field(default=10_485_760, ge=1024)

    # ── CORS ──────────────────────────────────────────────────────────────
    # "*" reflects any request origin (credentials stay allowed)
    cors_origins: str = Field(default="*")

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Auth ──────────────────────────────────────────────────────────────
    jwt_secret: str = Field(default="change-me-in-production")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expires_minutes: int = Field(default=60 * 24 * 7, ge=1)

    # ── Demo account ──────────────────────────────────────────────────────
    demo_seed_enabled: bool = Field(default=True)
    demo_seed_delay: float = Field(default=1.0, ge=0)
    demo_email: str = Field(default="admin@mail.com")
    demo_password: str = Field(default="admin123")
    demo_name: str = Field(default="Demo Admin")

    # ── Google Gemini ─────────────────────────────────────────────────────
    gemini_api_key: str = Field(default="")
    gemini_model: str = Field(default="gemini-1.5-flash")

    # Tenacity retry settings for Gemini calls
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_min_wait: int = Field(default=2, ge=0, le=30)
    retry_max_wait: int = Field(default=10, ge=0, le=120)

    # Circuit breaker
    cb_failure_threshold: int = Field(default=5, ge=1, le=20)
    cb_recovery_timeout: int = Field(default=60, ge=0, le=300)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        lower = v.lower()
        if lower not in VALID_ENVIRONMENTS:
            raise ValueError(
                f"Invalid environment '{v}'. Must be one of: {sorted(VALID_ENVIRONMENTS)}"
            )
        return lower

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that critical settings are configured.
        When:  Called during app startup (lifespan).
        How:   Collects every problem and raises one ValueError listing them.
        """
        errors = []
        if not self.gemini_api_key:
            errors.append(
                "GEMINI_API_KEY is not set. Summaries, questions and chat replies will fail."
            )
        if self.is_production and self.jwt_secret == "change-me-in-production":
            errors.append("JWT_SECRET still has its development default.")
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Default instance for the process entry point
settings = Settings()
