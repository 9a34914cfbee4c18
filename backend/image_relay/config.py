"""
Image Relay Configuration

All settings come from environment variables and are read once at startup
into a ``RelayConfig``, which is then handed to every component.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

# Default storage directory: <backend>/images
DEFAULT_IMAGE_DIR = Path(__file__).resolve().parent.parent / "images"

# Names accepted by both logging and uvicorn
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError:
        logger.warning(f"[Config] Invalid integer for {name}={value!r}, using {default}")
        return default


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value.strip())
    except ValueError:
        logger.warning(f"[Config] Invalid number for {name}={value!r}, using {default}")
        return default


def _env_log_level(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    level = value.strip().upper()
    if level not in LOG_LEVELS:
        logger.warning(f"[Config] Invalid log level {name}={value!r}, using {default}")
        return default
    return level


def _env_list(name: str, default: List[str]) -> List[str]:
    value = os.getenv(name)
    if value is None:
        return list(default)
    items = [item.strip() for item in value.split(",") if item.strip()]
    return items or list(default)


@dataclass
class RelayConfig:
    """Process-wide settings for the relay server."""
    # Storage settings
    image_dir: Path = DEFAULT_IMAGE_DIR
    max_upload_size_mb: int = 10            # Upload body limit in MB

    # Server settings
    host: str = "0.0.0.0"
    port: int = 7589
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    # Outbound fetch timeout in seconds (None = wait indefinitely)
    proxy_timeout_seconds: Optional[float] = None

    def __post_init__(self):
        self.image_dir = Path(self.image_dir)

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> "RelayConfig":
        """Build a config from environment variables, falling back to defaults."""
        return cls(
            image_dir=Path(os.getenv("IMAGE_DIR", str(DEFAULT_IMAGE_DIR))),
            max_upload_size_mb=_env_int("MAX_UPLOAD_SIZE_MB", 10),
            host=os.getenv("HOST", "0.0.0.0"),
            port=_env_int("PORT", 7589),
            cors_origins=_env_list("CORS_ORIGINS", ["*"]),
            log_level=_env_log_level("LOG_LEVEL", "INFO"),
            proxy_timeout_seconds=_env_float("PROXY_TIMEOUT_SECONDS", None),
        )
