"""Configuration management for gdrive-appdata.

Loads the OAuth client and timing settings from environment variables and .env.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DRIVE_APPDATA_SCOPE = "https://www.googleapis.com/auth/drive.appdata"
OPENID_CONFIG_URL = "https://accounts.google.com/.well-known/openid-configuration"
DRIVE_DISCOVERY_URL = "https://www.googleapis.com/discovery/v1/apis/drive/v3/rest"


class Settings(BaseModel):
    """Application settings loaded from environment variables."""
    client_id: str = Field(default="", description="Google OAuth client ID")
    client_secret: str = Field(default="", description="Google OAuth client secret (installed app)")
    scopes: list[str] = Field(default_factory=lambda: [DRIVE_APPDATA_SCOPE], description="OAuth scopes to request")
    token_timeout: float = Field(default=15.0, description="Seconds to wait for a token callback")
    refresh_lead_time: float = Field(default=300.0, description="Seconds before expiry to refresh silently")
    default_expires_in: int = Field(default=3600, description="Token lifetime when the provider omits one")
    openid_config_url: str = Field(default=OPENID_CONFIG_URL, description="Identity SDK discovery document")
    drive_discovery_url: str = Field(default=DRIVE_DISCOVERY_URL, description="Storage SDK discovery document")
    token_path: str = Field(
        default="~/.config/gdrive-appdata/token.json",
        description="Where authorized user credentials are cached; empty disables caching",
    )
    max_retries: int = Field(default=3, description="Drive API attempts for 429/5xx")
    retry_delay: float = Field(default=1.0, description="Base backoff delay in seconds")

    @property
    def scope(self) -> str:
        """Scopes as a single space-delimited OAuth scope string."""
        return " ".join(self.scopes)


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (where .env lives)."""
    current = Path(__file__).resolve().parent
    for parent in [current, *current.parents]:
        if (parent / ".env").exists():
            return parent
    return Path.cwd()


def _env(*keys: str, default: str = "") -> str:
    """Try multiple env var names, return the first one found."""
    for key in keys:
        val = os.environ.get(key, "")
        if val:
            return val.strip().strip('"')
    return default


def _split_scopes(raw: str) -> list[str]:
    return [s for s in raw.replace(",", " ").split() if s]


def _load_settings() -> Settings:
    """Load settings from environment variables.

    Supports GDRIVE_APPDATA_* names and the legacy GOOGLE_CLIENT_ID / CLIENT_ID.
    """
    defaults = Settings()
    return Settings(
        client_id=_env("GDRIVE_APPDATA_CLIENT_ID", "GOOGLE_CLIENT_ID", "CLIENT_ID"),
        client_secret=_env("GDRIVE_APPDATA_CLIENT_SECRET", "GOOGLE_CLIENT_SECRET", "CLIENT_SECRET"),
        scopes=_split_scopes(_env("GDRIVE_APPDATA_SCOPES", default=DRIVE_APPDATA_SCOPE)),
        token_timeout=float(_env("GDRIVE_APPDATA_TOKEN_TIMEOUT", default="15")),
        refresh_lead_time=float(_env("GDRIVE_APPDATA_REFRESH_LEAD_TIME", default="300")),
        default_expires_in=int(_env("GDRIVE_APPDATA_DEFAULT_EXPIRES_IN", default="3600")),
        openid_config_url=_env("GDRIVE_APPDATA_OPENID_CONFIG_URL", default=OPENID_CONFIG_URL),
        drive_discovery_url=_env("GDRIVE_APPDATA_DRIVE_DISCOVERY_URL", default=DRIVE_DISCOVERY_URL),
        token_path=_env("GDRIVE_APPDATA_TOKEN_PATH", default=defaults.token_path),
        max_retries=int(_env("GDRIVE_APPDATA_MAX_RETRIES", default="3")),
        retry_delay=float(_env("GDRIVE_APPDATA_RETRY_DELAY", default="1.0")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache the application settings."""
    env_path = _find_project_root() / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    return _load_settings()
