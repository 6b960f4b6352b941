from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Persistence
    STORAGE_BACKEND: str = "redis"  # "redis" or "database"
    REDIS_URL: str = "redis://localhost:6379/0"
    DATABASE_URL: str = "sqlite+aiosqlite:///./deepwork.db"
    STATS_KEY: str = "deepWorkStats"
    PERSIST_ATTEMPTS: int = 3
    PERSIST_RETRY_DELAY: float = 0.5

    # Timer
    TICK_INTERVAL: float = 1.0

    # Observability
    SENTRY_DSN: str = ""
    LOG_LEVEL: str = "INFO"

    ENVIRONMENT: str = "development"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
