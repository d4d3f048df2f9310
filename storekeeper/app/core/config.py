from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str
    LOG_LEVEL: str = "INFO"

    # CORS origins for the web POS
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # Redis / Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"
    CELERY_TASK_ALWAYS_EAGER: bool = False

    # SMTP
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    NOTIFICATION_ENABLED: bool = False

    # Low-stock alerts
    LOW_STOCK_ALERTS_ENABLED: bool = True
    LOW_STOCK_ALERT_RECIPIENTS: list[str] = []

    CURRENCY: str = "VND"


settings = Settings()  # type: ignore[call-arg]
