from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    API_BASE_URL: str = "http://localhost:3000/api"
    API_TOKEN: str | None = None
    HTTP_TIMEOUT_SECONDS: float = 10.0

    PAYMENT_POLL_INTERVAL_MS: int = 3000
    PAYMENT_POLL_MAX_ATTEMPTS: int = 20
    PAYMENT_FAILURE_POLICY: str = "keep_provisional"  # "cancel" | "keep_provisional"
    FLOW_RETENTION_SECONDS: float = 300.0

    FALLBACK_DAY_START: str = "09:00"
    FALLBACK_DAY_END: str = "17:00"
    FALLBACK_STEP_MINUTES: int = 30
    FALLBACK_ALERT_THRESHOLD: int = 3

    BUSINESS_TIMEZONE: str = "Africa/Nairobi"
    MIN_RECIPIENT_PHONE_LENGTH: int = 8

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"


settings = Settings()
