"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"
    VERSION: str = "0.01.00"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./lawdesk.db"

    # Appointments
    APPOINTMENT_DEFAULT_DURATION_MINUTES: int = 60
    APPOINTMENT_MIN_DURATION_MINUTES: int = 15
    APPOINTMENT_MAX_DURATION_MINUTES: int = 480

    # Mediations
    MEDIATION_REMINDER_LEAD_HOURS: int = 24
    MEDIATION_REMINDER_MESSAGE: str = "Mediation session reminder"
    # False keeps the legacy behavior: update_status overwrites without adjacency checks
    MEDIATION_STRICT_TRANSITIONS: bool = True

    # Reminder polling (hourly in production)
    REMINDER_POLL_INTERVAL_MINUTES: int = 60

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


settings = Settings()
