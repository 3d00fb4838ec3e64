"""
Retrying HTTP Client for the shipping and order APIs

- Exponential backoff with jitter
- 429 detection with Retry-After header respect
- Retries on 5xx, timeouts and connection errors
- Fatal 4xx responses are raised immediately

Retries belong to the collaborator side of the checkout: the core only sees
a final success or a final failure.
"""
import asyncio
import logging
import random
import time
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from typing import Dict, Optional

import httpx

from wbtrade_checkout.core.config import Settings, settings

logger = logging.getLogger(__name__)

# Maximum seconds we'll wait on a server-requested Retry-After
MAX_RETRY_AFTER_WAIT = 30.0


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 2
    base_delay: float = 0.5           # Base delay in seconds
    max_delay: float = 10.0           # Maximum delay cap
    exponential_base: float = 2.0     # Exponential backoff multiplier
    jitter_factor: float = 0.5        # Random jitter (0-1)

    # Status codes that should trigger retry
    retryable_status_codes: tuple = (429, 500, 502, 503, 504)

    # Don't retry these - they're permanent failures
    fatal_status_codes: tuple = (400, 401, 403, 404, 409, 422)


class RetryingHTTPClient:
    """
    Async HTTP client with retry and backoff.

    Usage:
        async with RetryingHTTPClient(base_url="http://localhost:5000/api") as client:
            response = await client.post("/checkout", json=payload)
    """

    def __init__(
        self,
        base_url: str = "",
        retry_config: Optional[RetryConfig] = None,
        timeout: float = 15.0,
        default_headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self.default_headers = default_headers or {}
        self.transport = transport

        self._client: Optional[httpx.AsyncClient] = None

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self.default_headers,
            transport=self.transport,
            follow_redirects=True,
        )

    async def __aenter__(self):
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def init(self):
        """Initialize client without context manager. Must call close() when done."""
        if self._client is None:
            self._client = self._build_client()
        return self

    async def close(self):
        """Close the client. Use this when not using context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _calculate_backoff(self, attempt: int) -> float:
        """
        Calculate delay with exponential backoff and jitter.

        Formula: min(base * (exp_base ^ attempt) + jitter, max_delay)
        """
        cfg = self.retry_config

        delay = cfg.base_delay * (cfg.exponential_base ** attempt)

        # Add random jitter (±jitter_factor of the delay)
        jitter = delay * cfg.jitter_factor * (2 * random.random() - 1)
        delay += jitter

        return max(0.0, min(delay, cfg.max_delay))

    def _parse_retry_after(self, response: httpx.Response) -> Optional[float]:
        """Parse Retry-After header, returns seconds to wait."""
        retry_after = response.headers.get("Retry-After")
        if not retry_after:
            return None

        try:
            return max(0.0, float(int(retry_after)))
        except ValueError:
            pass

        try:
            dt = parsedate_to_datetime(retry_after)
            return max(0.0, dt.timestamp() - time.time())
        except (ValueError, TypeError):
            return None

    async def request(
        self,
        method: str,
        url: str,
        retry_config: Optional[RetryConfig] = None,
        **kwargs,
    ) -> httpx.Response:
        """
        Make an HTTP request, retrying transient failures.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Target URL, relative to base_url
            retry_config: Retry policy for this request only; defaults to the client's
            **kwargs: Additional arguments passed to httpx

        Returns:
            httpx.Response on success

        Raises:
            httpx.HTTPStatusError: On a fatal status or when retries run out
            httpx.TransportError: When the last attempt failed to connect or timed out
        """
        # Auto-initialize if not using context manager
        if not self._client:
            await self.init()

        cfg = retry_config or self.retry_config
        last_exception: Optional[Exception] = None

        for attempt in range(cfg.max_retries + 1):
            try:
                logger.debug(f"[HTTP] {method} {url} (attempt {attempt + 1}/{cfg.max_retries + 1})")
                response = await self._client.request(method, url, **kwargs)
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                last_exception = e
                if attempt < cfg.max_retries:
                    delay = self._calculate_backoff(attempt)
                    logger.warning(f"[HTTP] {url}: {e.__class__.__name__}, retrying in {delay:.1f}s")
                    await asyncio.sleep(delay)
                    continue
                break

            if response.status_code in cfg.fatal_status_codes:
                logger.error(f"[HTTP] {url}: Fatal status {response.status_code}, not retrying")
                response.raise_for_status()

            if response.status_code in cfg.retryable_status_codes:
                if attempt < cfg.max_retries:
                    delay = None
                    if response.status_code == 429:
                        delay = self._parse_retry_after(response)
                        if delay is not None and delay > MAX_RETRY_AFTER_WAIT:
                            logger.error(f"[429] {url}: Retry-After {delay:.0f}s exceeds max wait")
                            response.raise_for_status()
                    if delay is None:
                        delay = self._calculate_backoff(attempt)
                    logger.warning(
                        f"[HTTP] {url}: Status {response.status_code}, "
                        f"retrying in {delay:.1f}s (attempt {attempt + 1})"
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.error(f"[HTTP] {url}: All {cfg.max_retries + 1} attempts failed")
                response.raise_for_status()

            response.raise_for_status()
            return response

        logger.error(f"[HTTP] {url}: All {cfg.max_retries + 1} attempts failed")
        raise last_exception

    async def get(self, url: str, **kwargs) -> httpx.Response:
        """GET request with retries."""
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs) -> httpx.Response:
        """POST request with retries."""
        return await self.request("POST", url, **kwargs)


def get_storefront_client(
    source: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> RetryingHTTPClient:
    """
    Get client configured for the storefront shipping/order API.

    Args:
        source: Settings to read; defaults to the module-level settings
        transport: Optional httpx transport (tests pass a MockTransport)
    """
    source = source or settings
    return RetryingHTTPClient(
        base_url=source.SHIPPING_API_BASE,
        retry_config=RetryConfig(max_retries=source.SHIPPING_API_MAX_RETRIES),
        timeout=source.SHIPPING_API_TIMEOUT_SECONDS,
        default_headers={"User-Agent": source.APP_NAME},
        transport=transport,
    )
