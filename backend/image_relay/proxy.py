"""
Proxy Fetcher

Fetches a remote image and streams it back to the caller without buffering
the whole body. Lets browser clients load cross-origin images through this
server.
"""

import logging
from typing import AsyncIterator, Dict, Optional
from dataclasses import dataclass

import anyio
import httpx

from .errors import BadRequest, InternalError, UpstreamFailure

logger = logging.getLogger(__name__)

# Shared caching allowed for 24h
CACHE_CONTROL = "public, max-age=86400"


@dataclass
class ProxiedImage:
    """An open upstream response ready to be streamed to the caller."""
    response: httpx.Response

    @property
    def content_type(self) -> Optional[str]:
        return self.response.headers.get("content-type")

    @property
    def headers(self) -> Dict[str, str]:
        """Headers to send to the caller."""
        headers = {"Cache-Control": CACHE_CONTROL}
        if self.content_type:
            headers["Content-Type"] = self.content_type
        return headers

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        """Yield the upstream body; the upstream response is closed when iteration stops."""
        try:
            async for chunk in self.response.aiter_bytes():
                yield chunk
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        """Release the upstream connection. Safe to call more than once."""
        if self.response.is_closed:
            return
        # Must finish even if the request task is being cancelled
        with anyio.CancelScope(shield=True):
            await self.response.aclose()


class ProxyFetcher:
    """
    Issues outbound GETs on a shared httpx client.

    Usage:
        fetcher = ProxyFetcher(http_client)
        image = await fetcher.fetch("https://example.com/cover.jpg")
        try:
            async for chunk in image.iter_bytes():
                ...
        finally:
            await image.aclose()
    """

    def __init__(self, http_client: httpx.AsyncClient):
        self.http_client = http_client

    async def fetch(self, url: Optional[str]) -> ProxiedImage:
        """
        Open a streaming GET to ``url``.

        Raises:
            BadRequest: url is missing or empty
            UpstreamFailure: upstream answered with a non-2xx status
            InternalError: network-level failure or malformed URL
        """
        if not url:
            raise BadRequest("Missing URL parameter")

        try:
            request = self.http_client.build_request("GET", url)
            response = await self.http_client.send(request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"[ImageProxy] Error proxying image {url[:80]}: {e}")
            raise InternalError() from e

        if not response.is_success:
            status = response.status_code
            await response.aclose()
            logger.warning(f"[ImageProxy] Upstream returned {status}: {url[:80]}")
            raise UpstreamFailure(status)

        logger.info(f"[ImageProxy] Proxying: {url[:80]} ({response.headers.get('content-type')})")
        return ProxiedImage(response=response)
