from decimal import Decimal
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./payhub.db"
    SECRET_KEY: str
    SESSION_MAX_AGE: int = 1800  # 30 minutes

    # "sql" for the durable store, "memory" for demos and tests
    STORAGE_BACKEND: Literal["sql", "memory"] = "sql"
    SQL_ECHO: bool = False

    # Overdraft is unchecked until product decides on a balance floor
    ALLOW_OVERDRAFT: bool = True
    # Posted as an opening credit so the balance still matches the history
    SIGNUP_BALANCE: Decimal = Decimal("0.00")
    SEED_DEMO_DATA: bool = False

    LOG_LEVEL: str = "INFO"

    # This configures how the settings are loaded
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

# Create a single instance to be used across the app
settings = Settings()
