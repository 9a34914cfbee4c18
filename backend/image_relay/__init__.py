"""
Image Relay Module

Minimal HTTP relay for images:
- Proxies remote images (bypasses CORS)
- Stores uploaded image bytes under a content-derived name
- Serves stored images from /images
- Deletes stored images older than 24 hours after each upload
"""

from .config import RelayConfig
from .errors import RelayError, BadRequest, UpstreamFailure, PayloadTooLarge, InternalError
from .proxy import ProxyFetcher, ProxiedImage
from .store import ImageStore, StoredImage
from .sweeper import RetentionSweeper, RETENTION_SECONDS
from .main import create_app

__all__ = [
    "RelayConfig",
    "RelayError",
    "BadRequest",
    "UpstreamFailure",
    "PayloadTooLarge",
    "InternalError",
    "ProxyFetcher",
    "ProxiedImage",
    "ImageStore",
    "StoredImage",
    "RetentionSweeper",
    "RETENTION_SECONDS",
    "create_app",
]
