from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Any, List, Optional
import json


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from a JSON list, comma-separated string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Application
    APP_NAME: str = "Internship Management Portal API"
    ENVIRONMENT: str = "development"

    # Server
    SERVER_HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "internship_portal"
    MONGO_SERVER_SELECTION_TIMEOUT_MS: int = 5000

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # CORS (kept as str so "a,b" and '["a","b"]' both parse)
    CORS_ORIGINS: str = "*"

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def cors_origins_list(self) -> List[str]:
        return parse_cors_origins(self.CORS_ORIGINS) or ["*"]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


settings = Settings()


def get_settings() -> Settings:
    return settings
