"""
Application Settings
===================

Main application settings and environment configuration using Pydantic Settings.
Supports development, testing, and production environments.
"""

from typing import Dict, Optional, List, Union
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import json
from pathlib import Path

_SANS_FONTS = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
    "C:\\Windows\\Fonts\\arial.ttf",
]
_SERIF_FONTS = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSerif.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSerif-Regular.ttf",
    "/System/Library/Fonts/Times.ttc",
    "C:\\Windows\\Fonts\\times.ttf",
]
_MONO_FONTS = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationMono-Regular.ttf",
    "/System/Library/Fonts/Menlo.ttc",
    "C:\\Windows\\Fonts\\cour.ttf",
]


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="Open Image", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # Storage Configuration
    storage_path: Path = Field(default=Path("./storage"), description="Storage directory path")
    scene_store_file: str = Field(
        default="editor_store.json", description="Editor persistence file inside storage_path"
    )

    # Remote Rendering Configuration
    render_timeout: float = Field(default=15.0, gt=0, description="Overall render timeout in seconds")
    image_fetch_timeout: float = Field(
        default=5.0, gt=0, description="Per-image fetch timeout in seconds"
    )
    image_max_bytes: int = Field(
        default=10 * 1024 * 1024, gt=0, description="Largest image body accepted"
    )
    image_max_redirects: int = Field(default=5, ge=0, description="Redirects followed per image")
    max_transport_length: int = Field(
        default=8000, description="Encoded scene length above which a URL-length warning is logged"
    )
    cache_max_age: int = Field(default=10800, description="Rendering endpoint cache lifetime in seconds")
    font_paths: List[str] = Field(
        default=list(_SANS_FONTS),
        description="Font files tried when no family-specific font is available",
    )
    font_families: Dict[str, List[str]] = Field(
        default={
            "sans-serif": list(_SANS_FONTS),
            "serif": list(_SERIF_FONTS),
            "monospace": list(_MONO_FONTS),
            "arial": list(_SANS_FONTS),
            "helvetica": list(_SANS_FONTS),
            "times new roman": list(_SERIF_FONTS),
            "times": list(_SERIF_FONTS),
            "georgia": list(_SERIF_FONTS),
            "courier new": list(_MONO_FONTS),
            "courier": list(_MONO_FONTS),
        },
        description="Font files per lower-case CSS family name, tried before font_paths",
    )

    # Client Capture Configuration
    capture_scale: float = Field(default=6.0, gt=0, le=8.0, description="Export upscaling factor")
    capture_jpeg_quality: int = Field(default=100, ge=1, le=100, description="Export JPEG quality")

    # Browser Configuration
    playwright_headless: bool = Field(default=True, description="Run browser in headless mode")
    playwright_timeout: int = Field(default=30000, description="Playwright timeout in milliseconds")
    browser_pool_size: int = Field(default=2, description="Browser instance pool size")

    # API Documentation Configuration
    enable_docs: bool = Field(default=True, description="Enable FastAPI docs endpoint")

    # Security Configuration
    allowed_hosts: List[str] = Field(default=["*"], description="Allowed hosts for CORS")

    # Monitoring Configuration
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("allowed_hosts", mode="before")
    @classmethod
    def parse_allowed_hosts(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse allowed hosts from string or list."""
        if isinstance(v, str):
            # Handle JSON-like string: ["*"] or ["host1", "host2"]
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            # Handle comma-separated string: "*" or "host1,host2"
            return [host.strip() for host in v.split(",") if host.strip()]
        return v

    @field_validator("storage_path")
    @classmethod
    def create_directories(cls, v: Path) -> Path:
        """Ensure directories exist."""
        v.mkdir(parents=True, exist_ok=True)
        return v

    @property
    def scene_store_path(self) -> Path:
        """Location of the editor's persistent store."""
        return self.storage_path / self.scene_store_file

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, env_prefix="OPEN_IMAGE_"
    )


# Global settings instance - will be initialized when needed
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
