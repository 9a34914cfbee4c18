"""
Image Relay Application

Assembles the FastAPI app: proxy and upload routes, the /images static
mount, CORS, error mapping and the catch-all 404.

Run:
    image-relay                 # console script
    python -m image_relay
"""

import sys
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import RelayConfig
from .errors import RelayError
from .proxy import ProxyFetcher
from .routes_fastapi import router
from .store import ImageStore, PUBLIC_PREFIX
from .sweeper import RetentionSweeper

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger. Call once at startup."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - [%(levelname)s] - %(message)s",
        stream=sys.stdout,
    )
    # Silence noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def create_app(
    config: Optional[RelayConfig] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the relay application.

    Args:
        config: Settings (read from the environment if omitted)
        http_client: Outbound client for the proxy. If omitted one is opened
            on startup and closed on shutdown.
    """
    config = config or RelayConfig.from_env()

    image_store = ImageStore(config.image_dir)
    try:
        image_store.ensure_dir()
    except OSError as e:
        logger.error(f"[Relay] Error creating images directory: {e}")
        raise

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned_client = None
        if app.state.proxy_fetcher is None:
            owned_client = httpx.AsyncClient(
                timeout=config.proxy_timeout_seconds,
                follow_redirects=True,
            )
            app.state.proxy_fetcher = ProxyFetcher(owned_client)
        try:
            yield
        finally:
            if owned_client is not None:
                await owned_client.aclose()

    app = FastAPI(title="Image Relay", lifespan=lifespan)

    app.state.config = config
    app.state.image_store = image_store
    app.state.sweeper = RetentionSweeper(config.image_dir)
    app.state.proxy_fetcher = ProxyFetcher(http_client) if http_client is not None else None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    app.mount(PUBLIC_PREFIX, StaticFiles(directory=config.image_dir), name="images")

    @app.exception_handler(RelayError)
    async def handle_relay_error(request: Request, exc: RelayError):
        return PlainTextResponse(exc.detail, status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            logger.info(f"[Relay] Received request for non-existent path: {request.method} {request.url.path}")
            return PlainTextResponse(f"Path not found: {request.url.path}", status_code=404)
        return await http_exception_handler(request, exc)

    return app


def main() -> None:
    config = RelayConfig.from_env()
    setup_logging(config.log_level)
    app = create_app(config)
    logger.info(f"[Relay] Image relay server running on port {config.port}")
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
