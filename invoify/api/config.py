"""Configuration for FastAPI application."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import List, Optional, Union
import json


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    # API Configuration
    api_prefix: str = "/api/v1"
    api_title: str = "invoify API"
    api_version: str = "1.0.0"
    allowed_origins: Union[str, List[str]] = ["*"]

    @field_validator('allowed_origins', mode='before')
    @classmethod
    def parse_allowed_origins(cls, v):
        """Parse allowed_origins from string or list."""
        if isinstance(v, str):
            # If it's a JSON array string, parse it
            if v.startswith('['):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    return [v]
            # Single origin string
            return [v]
        return v

    # Caller identity, set by the upstream auth layer
    user_id_header: str = "X-User-Id"
    user_email_header: str = "X-User-Email"

    # Overrides for the environment config (None keeps the env value)
    storage_backend: Optional[str] = None
    working_dir: Optional[str] = None
    redis_url: Optional[str] = None
    redis_password: Optional[str] = None

    # Backups
    backup_dir: Optional[str] = None
    default_keep: Optional[int] = None


settings = Settings()
