"""Image uploader configuration.

Loads settings from ``uploader.settings.yaml`` and applies environment
overrides on top:

  * ``PORT``        — listening port of the receiver (default 5000)
  * ``UPLOAD_URL``  — receiver endpoint the selector posts images to;
                      without it the URL points at this server on ``PORT``
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("uploader.settings.yaml")

DEFAULT_PORT = 5000
MAX_FILE_SIZE_BYTES = 5 * 1024 * 1024


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT


class ReceiverSettings(BaseModel):
    """Configuration for the ``POST /api/upload`` endpoint."""
    upload_dir:          str                          = "uploads"
    naming:              Literal["timestamp", "uuid"] = "timestamp"
    reject_missing_file: bool                         = False


class SelectorSettings(BaseModel):
    """Limits enforced by the image selector and its drop-zone."""
    max_images:          int       = 5
    max_selected:        int       = 5
    max_file_size_bytes: int       = MAX_FILE_SIZE_BYTES
    accepted_types:      List[str] = Field(default_factory=lambda: ["image/jpeg", "image/png"])
    max_crop_pixels:     int       = 25_000_000
    session_idle_minutes: int      = 120

    @field_validator(
        "max_images", "max_selected", "max_file_size_bytes", "max_crop_pixels", "session_idle_minutes"
    )
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value


class ClientSettings(BaseModel):
    # None: derived from server.port at load time
    upload_url:      Optional[str]   = None
    timeout_seconds: Optional[float] = None


class LoggingSettings(BaseModel):
    level: str = "info"


class AppConfig(BaseModel):
    server:   ServerSettings   = Field(default_factory=ServerSettings)
    receiver: ReceiverSettings = Field(default_factory=ReceiverSettings)
    selector: SelectorSettings = Field(default_factory=SelectorSettings)
    client:   ClientSettings   = Field(default_factory=ClientSettings)
    logging:  LoggingSettings  = Field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    port = os.environ.get("PORT")
    if port:
        data.setdefault("server", {})["port"] = int(port)

    upload_url = os.environ.get("UPLOAD_URL")
    if upload_url:
        data.setdefault("client", {})["upload_url"] = upload_url
    return data


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


_config: Optional[AppConfig] = None


def load_config(settings_path: Optional[Path] = None) -> AppConfig:
    """Load settings from YAML and environment into an *AppConfig*."""
    data = _load_yaml(Path(settings_path) if settings_path else SETTINGS_FILE)
    data = _apply_env_overrides(data)

    config = AppConfig(**data)
    if not config.client.upload_url:
        config.client.upload_url = f"http://localhost:{config.server.port}/api/upload"
    logger.info(
        "Settings loaded (server=%s:%s, upload_dir=%s, naming=%s)",
        config.server.host,
        config.server.port,
        config.receiver.upload_dir,
        config.receiver.naming,
    )
    return config


def get_config() -> AppConfig:
    """Return the process-wide config, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Drop the cached config (for testing)."""
    global _config
    _config = None
