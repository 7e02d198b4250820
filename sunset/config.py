import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file early so env vars are available for YAML interpolation
load_dotenv(Path.cwd() / ".env")

# Pattern to match $VAR_NAME environment variable references
ENV_VAR_PATTERN = re.compile(r"\$([A-Z_][A-Z0-9_]*)")


def interpolate_env_vars(value):
    """Recursively replace $VAR_NAME with os.environ values."""
    if isinstance(value, str):

        def replace(match):
            var = match.group(1)
            val = os.environ.get(var)
            if val is None:
                raise ValueError(f"Environment variable ${var} not set")
            return val

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: interpolate_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def get_config_path() -> Path:
    """Return the path of the app.yaml in the working directory."""
    return Path.cwd() / "app.yaml"


def load_app_config() -> dict:
    """Load and parse app.yaml with environment variable interpolation."""
    config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(f"app.yaml not found at {config_path}")

    with open(config_path, "r") as f:
        config = yaml.safe_load(f)

    return interpolate_env_vars(config or {})


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str = "sqlite+aiosqlite:///./app.db"
    echo: bool = False
    # Create missing tables on startup instead of relying on migrations
    create_all: bool = False


class SessionConfig(BaseModel):
    """Session cookie configuration."""

    cookie_name: str = "session"
    max_age: int = 86400
    secure: bool = False


class LogfireConfig(BaseModel):
    """Pydantic Logfire tracing configuration."""

    enabled: bool = False
    service_name: str = "sunset"
    environment: str | None = None
    sample_rate: float = 1.0
    console: bool = False


class ExpirationConfig(BaseModel):
    """Content expiration behaviour."""

    # Fixed offset (hours from UTC) that stored civil times are interpreted in
    utc_offset: float = Field(default=-3, ge=-12, le=14)
    # Only items of this type are swept, hidden and redirected
    content_type: str = "post"
    # What a direct request for an expired item gets
    on_direct_access: Literal["redirect", "not_found"] = "redirect"
    fallback_url: str = "/"
    # Seconds between two runs of the recurring sweep
    check_interval: int = Field(default=3600, gt=0)
    # Also sweep on every public request
    sweep_on_request: bool = True
    scheduler_enabled: bool = True
    # Seconds between scheduler wake-ups
    tick_seconds: float = Field(default=60.0, gt=0)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    debug: bool = False
    secret_key: str
    site_name: str = "Sunset"

    # Sections loaded from app.yaml
    db: DatabaseConfig = DatabaseConfig()
    session: SessionConfig = SessionConfig()
    logfire: LogfireConfig = LogfireConfig()
    expiration: ExpirationConfig = ExpirationConfig()


_SECTIONS: dict[str, type[BaseModel]] = {
    "db": DatabaseConfig,
    "session": SessionConfig,
    "logfire": LogfireConfig,
    "expiration": ExpirationConfig,
}


@lru_cache
def get_settings() -> Settings:
    """Load settings from .env and app.yaml."""
    base_settings = Settings()

    try:
        app_config = load_app_config()
    except FileNotFoundError:
        return base_settings

    updates = {
        name: model(**app_config[name])
        for name, model in _SECTIONS.items()
        if app_config.get(name)
    }
    if "site_name" in app_config:
        updates["site_name"] = app_config["site_name"]

    if updates:
        return base_settings.model_copy(update=updates)

    return base_settings
