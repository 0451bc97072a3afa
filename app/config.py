# app/config.py
"""
Application settings

Read from environment variables (and an optional .env file) and validated once
at startup. Routes receive them through the get_settings dependency.
"""
import os
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

APP_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_DATA_DIR = os.path.join(APP_DIR, "data")


class Settings(BaseSettings):
    APP_NAME: str = "Tour Booking Backend"
    ENVIRONMENT: Literal["development", "test", "production"] = "development"
    PORT: int = Field(5000, ge=1, le=65535)
    LOG_LEVEL: str = "INFO"

    # Primary registration store
    DATABASE_URL: str = "sqlite:///./registrations.db"
    DATABASE_PASSWORD: Optional[SecretStr] = None

    # Local registration log and static catalog documents
    DATA_DIR: str = DEFAULT_DATA_DIR
    CATALOG_DIR: str = os.path.join(DEFAULT_DATA_DIR, "catalog")

    RECONCILE_INTERVAL_SECONDS: float = Field(60, ge=0)
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @field_validator("DATABASE_URL")
    @classmethod
    def database_url_must_parse(cls, v):
        try:
            make_url(v)
        except ArgumentError as e:
            raise ValueError(f"DATABASE_URL is not a valid database URL: {e}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def log_level_upper(cls, v):
        return v.upper()

    @model_validator(mode="after")
    def require_credentials_in_production(self):
        if self.ENVIRONMENT != "production":
            return self
        url = make_url(self.DATABASE_URL)
        if url.get_backend_name() != "sqlite" and not url.password and self.DATABASE_PASSWORD is None:
            raise ValueError("DATABASE_PASSWORD is required in production when DATABASE_URL carries no credentials")
        return self

    @property
    def registration_log_path(self) -> str:
        return os.path.join(self.DATA_DIR, "registrations.json")

    @property
    def expose_errors(self) -> bool:
        """Whether raw store and exception messages are echoed to clients."""
        return self.ENVIRONMENT != "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
