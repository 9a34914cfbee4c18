"""
Image Relay API Routes

Provides endpoints for:
- Proxying external images (GET /proxy?url=...)
- Uploading raw image bytes (POST /upload)

Stored images are served from /images by a StaticFiles mount set up in
``main.create_app``.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from .errors import PayloadTooLarge
from .proxy import ProxiedImage, ProxyFetcher
from .store import ImageStore
from .sweeper import RetentionSweeper

logger = logging.getLogger(__name__)

# ============================================
# Response Models
# ============================================

class UploadResponse(BaseModel):
    """Response model for upload"""
    url: str = Field(..., description="Relative path the stored image is served from")


class ProxiedImageResponse(StreamingResponse):
    """
    Streams a proxied image and always releases the upstream connection.

    Starlette stops iterating the body when the client disconnects and skips
    background tasks, so the close happens here instead.
    """

    def __init__(self, image: ProxiedImage):
        self.image = image
        super().__init__(image.iter_bytes(), headers=image.headers)

    async def __call__(self, scope, receive, send):
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.image.aclose()


# ============================================
# Router
# ============================================

router = APIRouter(tags=["Image Relay"])


# ============================================
# Helpers
# ============================================

async def read_body_limited(request: Request, limit: int) -> bytes:
    """Read the raw request body, rejecting anything over ``limit`` bytes."""
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > limit:
        raise PayloadTooLarge()

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise PayloadTooLarge()
    return bytes(body)


# ============================================
# Endpoints
# ============================================

@router.get("/proxy")
async def proxy_image(
    request: Request,
    url: Optional[str] = Query(None, description="URL of the image to proxy"),
):
    """
    Proxy an external image.

    Forwards the upstream content-type, adds a 24h shared-cache directive and
    streams the body through.

    Example:
        GET /proxy?url=https://example.com/image.jpg
    """
    fetcher: ProxyFetcher = request.app.state.proxy_fetcher
    image = await fetcher.fetch(url)

    return ProxiedImageResponse(image)


@router.post("/upload", response_model=UploadResponse)
async def upload_image(request: Request, background_tasks: BackgroundTasks):
    """
    Store raw image bytes sent as the request body.

    The Content-Type header decides the file extension (jpg if absent).
    Old images are swept after the response has been sent.

    Example:
        POST /upload   (Content-Type: image/png, body: <bytes>)
        -> {"url": "/images/<md5>-<ms>.png"}
    """
    config = request.app.state.config
    store: ImageStore = request.app.state.image_store
    sweeper: RetentionSweeper = request.app.state.sweeper

    content_type = request.headers.get("content-type")
    data = await read_body_limited(request, config.max_upload_size_bytes)
    logger.info(f"[Relay] Received upload ({content_type or 'no content-type'}, {len(data)} bytes)")

    stored = await asyncio.to_thread(store.save, data, content_type)
    logger.info(f"[Relay] Returning URL: {stored.url}")

    background_tasks.add_task(sweeper.run_detached)
    return UploadResponse(url=stored.url)
