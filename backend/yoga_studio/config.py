# backend/yoga_studio/config.py
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # DB URL used by SQLAlchemy. Any SQLAlchemy URL works; tests use "sqlite://".
    DATABASE_URL: str = "postgresql+psycopg2://postgres:postgres@db:5432/yoga_studio"

    # App options (used by db.py and elsewhere)
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # IANA zone used to decide which calendar day is "today" for the studio.
    # Unset means the server's local date.
    STUDIO_TIMEZONE: Optional[str] = None

    # Fixed preference key the last-used booking email is remembered under
    EMAIL_STORAGE_KEY: str = "@YogaStudio:userEmail"

    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

settings = Settings()
