"""
HTTP surface: a single GET / that relays the rewritten subscription.
"""

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response

from .config import RelayConfig
from .errors import DecodeError, RelayError
from .fetcher import SubscriptionFetcher
from .transcoder import decode, rewrite

logger = structlog.get_logger(__name__)

PLAIN_TEXT = 'text/plain; charset=utf-8'


def create_app(config: RelayConfig, fetcher: Optional[SubscriptionFetcher] = None) -> FastAPI:
    """Build the relay app around an already validated config."""
    app = FastAPI(title="subrelay", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.config = config
    app.state.fetcher = fetcher or SubscriptionFetcher(timeout=config.fetch_timeout)

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError) -> PlainTextResponse:
        event = "subscription_decode_failed" if isinstance(exc, DecodeError) else "subscription_fetch_failed"
        logger.error(event,
                     kind=type(exc).__name__,
                     error=str(exc))
        return PlainTextResponse(str(exc), status_code=500)

    @app.get("/")
    async def subscription(request: Request) -> Response:
        config: RelayConfig = request.app.state.config
        fetcher: SubscriptionFetcher = request.app.state.fetcher

        logger.info("start_get_request")
        raw = await fetcher.fetch(config.sub_url, config.proxy_url)
        decoded = decode(raw, legacy_padding=config.legacy_padding)

        if config.verbose_log:
            logger.info("original_subscription", content=decoded)

        body = rewrite(decoded).encode('utf-8', errors='surrogateescape')
        return Response(content=body, media_type=PLAIN_TEXT)

    return app
