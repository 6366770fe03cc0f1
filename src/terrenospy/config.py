"""Configuration system for Terrenos PY.

Uses pydantic-settings to load configuration from environment variables
and .env files with defaults matching the public listing site.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Environment variables are prefixed with TERRENOS_ (e.g., TERRENOS_GIST_ID).
    Instances are frozen: the store consumes one immutable snapshot.
    """

    model_config = SettingsConfigDict(
        env_prefix="TERRENOS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Storage
    storage_mode: Literal["local", "gist"] = Field(
        default="gist",
        description="'gist' mirrors to the remote Gist, 'local' uses the cache only",
    )
    gist_id: str = Field(default="", description="GitHub Gist identifier")
    gist_token: str = Field(default="", description="GitHub token with gist scope")
    gist_filename: str = Field(
        default="terrenos-py.json",
        description="File inside the Gist holding the property document",
    )
    gist_api_url: str = Field(
        default="https://api.github.com/gists",
        description="Base URL of the Gist API",
    )
    http_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds before a remote call is treated as failed",
    )
    sync_interval_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Period of the background reconciliation",
    )

    # Local cache
    cache_dir: Path = Field(
        default=Path.home() / ".terrenospy" / "cache",
        description="Directory for the local cache database",
    )
    cache_db_name: str = Field(default="terrenos.db")

    # Listings
    default_images: list[str] = Field(
        default=[
            "https://images.unsplash.com/photo-1560518883-ce09059eeffa?w=800&auto=format&fit=crop",
            "https://images.unsplash.com/photo-1570129477492-45c003edd2be?w=800&auto=format&fit=crop",
        ],
        description="Fallback images for listings created without photos",
    )
    max_images: int = Field(default=6, ge=1, description="Images kept per listing")
    max_file_size: int = Field(
        default=5 * 1024 * 1024,
        gt=0,
        description="Largest accepted image upload in bytes",
    )

    # Admin panel
    admin_username: str = Field(default="admin")
    admin_password: str = Field(default="admin123")

    # Contact defaults
    whatsapp: str = Field(default="595984323438", description="WhatsApp number, digits only")
    contact_email: str = Field(default="")
    contact_phone: str = Field(default="")

    @property
    def cache_path(self) -> Path:
        """Full path of the local cache database."""
        return Path(self.cache_dir) / self.cache_db_name


# Singleton instance for easy import
config = Settings()
