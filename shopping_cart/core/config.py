from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized shopping cart settings loaded from environment.

    Optional env vars (.env):
      - DATABASE_URL (defaults to a local SQLite file)
      - DEFAULT_SESSION / DEFAULT_INSTANCE (cart identity fallbacks)
      - CONDITIONS_PERSISTENT (store conditions, or only items)
      - IGNORE_CONDITION_VALIDATION (skip validators when applying conditions)
    """

    PROJECT_NAME: str = "Shopping Cart Service"
    API_V1_STR: str = "/api/v1"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # DB config
    DATABASE_URL: str = "sqlite:///./shopping_cart.db"
    SQL_ECHO: bool = False

    # Cart identity
    DEFAULT_SESSION: str = "C97ROP6UDdemJu8M"
    DEFAULT_INSTANCE: str = "cart"

    # Conditions
    CONDITIONS_PERSISTENT: bool = True
    IGNORE_CONDITION_VALIDATION: bool = False

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
