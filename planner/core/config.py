from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from planner.scheduler.models import WorkingHoursPolicy


class Settings(BaseSettings):
    """Application-wide configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
    )

    app_env: Literal["development", "production", "test"] = Field(default="development", validation_alias="APP_ENV")
    app_port: int = Field(default=8000, validation_alias="APP_PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    database_url: str = Field(default="sqlite:///./planner.db", validation_alias="DATABASE_URL")

    work_day_start_hour: int = Field(default=9, ge=0, le=23, validation_alias="WORK_DAY_START_HOUR")
    work_day_end_hour: int = Field(default=17, ge=0, le=23, validation_alias="WORK_DAY_END_HOUR")
    work_days: list[int] = Field(default_factory=lambda: [0, 1, 2, 3, 4], validation_alias="WORK_DAYS")
    buffer_minutes: int = Field(default=15, ge=0, validation_alias="BUFFER_MINUTES")
    schedule_start_offset_days: int = Field(default=1, ge=0, validation_alias="SCHEDULE_START_OFFSET_DAYS")
    schedule_window_days: int = Field(default=7, ge=0, validation_alias="SCHEDULE_WINDOW_DAYS")
    commit_backoff_minutes: int = Field(default=1, ge=1, validation_alias="COMMIT_BACKOFF_MINUTES")
    scheduler_timezone: str = Field(default="UTC", validation_alias="SCHEDULER_TIMEZONE")

    google_client_id: str | None = Field(default=None, validation_alias="GOOGLE_CLIENT_ID")
    google_client_secret: str | None = Field(default=None, validation_alias="GOOGLE_CLIENT_SECRET")
    google_redirect_uri: str | None = Field(default=None, validation_alias="GOOGLE_REDIRECT_URI")
    google_oauth_scopes: str = Field(
        default="https://www.googleapis.com/auth/calendar https://www.googleapis.com/auth/documents",
        validation_alias="GOOGLE_OAUTH_SCOPES",
    )
    google_calendar_id: str | None = Field(default=None, validation_alias="GOOGLE_CALENDAR_ID")
    oauthlib_insecure_transport: str | None = Field(default=None, alias="OAUTHLIB_INSECURE_TRANSPORT")

    def working_hours_policy(self) -> WorkingHoursPolicy:
        return WorkingHoursPolicy(
            start_hour=self.work_day_start_hour,
            end_hour=self.work_day_end_hour,
            work_days=frozenset(self.work_days),
        )

    def oauth_scopes(self) -> list[str]:
        scopes = [scope.strip() for scope in self.google_oauth_scopes.split(" ") if scope.strip()]
        return scopes or ["https://www.googleapis.com/auth/calendar"]


@lru_cache(1)
def get_settings() -> Settings:
    """Return cached settings instance to avoid reparsing env variables."""

    return Settings()
