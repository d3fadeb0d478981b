from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from activity_tracker.services.time_utils import validate_time_step

DEFAULT_JWT_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    environment: str = "development"
    app_name: str = "ActivityTracker"
    database_url: str = "sqlite:///./activity_tracker.db"
    log_level: str = "INFO"
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_issuer: str = "activity-tracker"
    jwt_audience: str = "activity-tracker-api"
    access_token_minutes: int = 480
    cors_allow_origins: str = "http://localhost:3000"
    activity_timezone: str = "Europe/Rome"
    activity_required_minutes: int = Field(default=480, ge=1)
    activity_strict_continuity: bool = False
    activity_day_start: str = "00:00"
    activity_daily_max_minutes: int = Field(default=14 * 60, ge=1)
    activity_break_type: str = "pausa"
    activity_other_type: str = "altro"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_cors_origins() -> list[str]:
    raw = get_settings().cors_allow_origins
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def is_production() -> bool:
    return get_settings().environment.strip().lower() == "production"


def validate_settings() -> list[str]:
    """Return configuration problems; raise in production when any exist."""
    settings = get_settings()
    errors: list[str] = []

    if is_production() and settings.jwt_secret == DEFAULT_JWT_SECRET:
        errors.append("JWT_SECRET must be changed in production")

    step_check = validate_time_step(settings.activity_day_start)
    if not step_check.valid:
        errors.append(f"ACTIVITY_DAY_START is invalid: {step_check.error}")

    if not settings.activity_break_type.strip():
        errors.append("ACTIVITY_BREAK_TYPE must not be blank")
    if not settings.activity_other_type.strip():
        errors.append("ACTIVITY_OTHER_TYPE must not be blank")

    if errors and is_production():
        joined = "; ".join(errors)
        raise RuntimeError(f"Configuration errors: {joined}")
    return errors
