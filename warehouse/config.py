from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Renovation Warehouse"
    DATABASE_URL: str = "sqlite:///./warehouse.db"

    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 72

    # Inventory
    DEFAULT_ALERT_THRESHOLD: int = 10

    # Sync loop: forced refresh interval and cross-context storage check interval
    SYNC_POLL_INTERVAL_SECONDS: float = 30.0
    STORAGE_WATCH_INTERVAL_SECONDS: float = 1.0

    # Bootstrap
    DEFAULT_ADMIN_USERNAME: str = "admin"
    DEFAULT_ADMIN_PASSWORD: str = "admin123"
    SEED_DEMO_DATA: bool = True

    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env"}


settings = Settings()
