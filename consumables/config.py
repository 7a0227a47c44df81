from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Consumable Stock"
    DATABASE_URL: str = "sqlite:///./consumables.db"

    LOG_LEVEL: str = "INFO"

    # Stock mutation engine: bounded optimistic retries per atomic unit
    STOCK_MAX_RETRIES: int = 3
    STOCK_RETRY_BACKOFF_MS: int = 20

    # Upper bound for one restock/usage unit (also the store lock wait)
    STOCK_TX_TIMEOUT_SECONDS: float = 5.0

    # List endpoints
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    model_config = {"env_file": ".env"}


settings = Settings()
