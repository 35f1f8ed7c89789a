from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


class Settings(BaseSettings):
    APP_NAME: str = "Finance Planner"
    ENV: str = "dev"

    # Local SQLite file next to the package so the path does not depend on the CWD
    _default_db_path = Path(__file__).resolve().parents[2] / "finance_planner.sqlite3"
    DATABASE_URL: str = f"sqlite:///{_default_db_path}"

    CORS_ORIGINS: list[str] = ["*"]
    TIMEZONE: str = "Asia/Kolkata"
    LOG_LEVEL: str = "INFO"

    DEFAULT_CURRENCY: str = "INR"
    SEED_DEFAULT_CATEGORIES: bool = True
    UPCOMING_WINDOW_DAYS: int = 30

    model_config = SettingsConfigDict(env_file=(".env",), env_prefix="FP_", case_sensitive=False)


settings = Settings()
