"""
Fetches the raw subscription document over HTTP, optionally through a
forward proxy. One client per call, nothing shared between requests.
"""

import time
from typing import Any, Dict, Optional

import httpx
import structlog

from .errors import InvalidProxyConfig, TransportError, UpstreamError

logger = structlog.get_logger(__name__)

PROXY_SCHEMES = ('http', 'https')


def parse_proxy_url(proxy_url: str) -> Optional[httpx.URL]:
    """Parse the configured proxy string; empty means a direct connection.

    Only http and https forward proxies are accepted. SOCKS proxies are
    rejected with InvalidProxyConfig.
    """
    if not proxy_url:
        return None

    try:
        parsed = httpx.URL(proxy_url)
    except httpx.InvalidURL as e:
        raise InvalidProxyConfig(f"invalid proxy URL: {e}") from e

    if parsed.scheme not in PROXY_SCHEMES:
        raise InvalidProxyConfig(f"invalid proxy URL: unsupported scheme in {proxy_url!r}")
    if not parsed.host:
        raise InvalidProxyConfig(f"invalid proxy URL: missing host in {proxy_url!r}")

    return parsed


class SubscriptionFetcher:
    def __init__(
        self,
        timeout: Optional[float] = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """Initialize the fetcher.

        Args:
            timeout: Seconds before the transport gives up, None to wait forever.
            transport: Replacement transport, mostly for tests.
        """
        self.user_agent = 'subrelay/1.0'
        self.timeout = timeout
        self.max_redirects = 10
        self._transport = transport

    def _client_options(self, proxy: Optional[httpx.URL]) -> Dict[str, Any]:
        options = {
            'timeout': httpx.Timeout(self.timeout),
            'follow_redirects': True,
            'max_redirects': self.max_redirects,
            'headers': {'User-Agent': self.user_agent},
            'trust_env': False,
        }
        if proxy is not None:
            options['proxy'] = str(proxy)
        if self._transport is not None:
            options['transport'] = self._transport
        return options

    async def fetch(self, url: str, proxy_url: str = "") -> bytes:
        """GET the subscription and return the body of a 200 response.

        Raises:
            InvalidProxyConfig: proxy_url is set but unusable. No request is made.
            TransportError: the request could not be sent or the body not read.
            UpstreamError: the server answered with any status other than 200.
        """
        proxy = parse_proxy_url(proxy_url)
        if not url:
            raise TransportError("GET \"\": missing subscription URL")

        start_time = time.time()
        try:
            async with httpx.AsyncClient(**self._client_options(proxy)) as client:
                async with client.stream('GET', url) as response:
                    if response.status_code != 200:
                        raise UpstreamError(f"{response.status_code} {response.reason_phrase}".strip())
                    body = await response.aread()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(f"GET \"{url}\": {str(e) or type(e).__name__}") from e

        logger.debug("subscription_fetched",
                     url=url,
                     proxied=proxy is not None,
                     size=len(body),
                     fetch_time=round(time.time() - start_time, 3))
        return body
