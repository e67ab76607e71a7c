#!/usr/bin/env python3
"""PortalJS action API client with response caching and connection retries."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .cache import TTLCache, make_cache_key
from .config import Settings, settings as default_settings
from .session import SessionCredential
from .utils.exceptions import (
    PayloadTooLargeError,
    UpstreamApiError,
    UpstreamConnectionError,
    UpstreamHttpError,
    ValidationError,
)
from .utils.logger import get_logger, log_api_call

USER_AGENT = "MCP-PortalJS-Server/1.0"

# Only failures that never reached the portal are retried, so POSTs stay safe.
RETRYABLE_EXCEPTIONS = (httpx.ConnectError, httpx.ConnectTimeout)


@dataclass
class RawResource:
    """Body of a resource file downloaded from its declared URL."""

    url: str
    content_type: str
    text: str


class PortalAPIClient:
    """Async client for ``{portal}/api/3/action/{action}`` endpoints.

    Successful GET results are cached by ``make_cache_key(action, params)``.
    POST requests and calls made with ``cacheable=False`` never touch the
    cache.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache: Optional[TTLCache] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or default_settings
        self.base_url = self.settings.portal_base_url.rstrip("/")
        if cache is None:
            cache = TTLCache(
                ttl_ms=self.settings.cache_ttl_ms, enabled=self.settings.cache_enabled
            )
        self.cache = cache
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._client_lock = asyncio.Lock()
        self.logger = get_logger("client")

    async def __aenter__(self) -> "PortalAPIClient":
        await self.get_http_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def get_http_client(self) -> httpx.AsyncClient:
        """Get or create the pooled HTTP client."""
        if self._http_client is None:
            async with self._client_lock:
                if self._http_client is None:
                    timeout = httpx.Timeout(
                        connect=self.settings.connect_timeout,
                        read=self.settings.read_timeout,
                        write=10.0,
                        pool=30.0,
                    )
                    limits = httpx.Limits(
                        max_connections=self.settings.max_connections,
                        max_keepalive_connections=self.settings.max_keepalive_connections,
                        keepalive_expiry=self.settings.keepalive_expiry,
                    )
                    self._http_client = httpx.AsyncClient(
                        timeout=timeout,
                        limits=limits,
                        follow_redirects=True,
                        max_redirects=5,
                    )
                    self._owns_http_client = True

        return self._http_client

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._http_client is not None and self._owns_http_client:
            async with self._client_lock:
                if self._http_client is not None:
                    await self._http_client.aclose()
                    self._http_client = None

    def action_url(self, action: str, credential: Optional[SessionCredential] = None) -> str:
        base_url = self.base_url
        if credential is not None and credential.api_url:
            base_url = credential.api_url.rstrip("/")
        return f"{base_url}/api/3/action/{action}"

    def _headers(self, credential: Optional[SessionCredential] = None) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        api_key = credential.api_key if credential is not None else self.settings.api_key
        if api_key:
            headers["Authorization"] = api_key
        return headers

    async def _send(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Issue one HTTP request, retrying connection failures."""
        client = await self.get_http_client()
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.max_retries + 1),
            wait=wait_exponential(
                multiplier=self.settings.retry_backoff_multiplier,
                min=self.settings.retry_delay,
                max=self.settings.max_retry_delay,
            ),
            retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
            before_sleep=before_sleep_log(self.logger, logging.WARNING),
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    if method == "GET":
                        response = await client.get(url, params=params, headers=headers)
                    else:
                        response = await client.post(url, json=params, headers=headers)
        except httpx.TimeoutException as e:
            raise UpstreamConnectionError(f"request timed out ({type(e).__name__})", url)
        except httpx.HTTPError as e:
            raise UpstreamConnectionError(str(e) or type(e).__name__, url)

        content_length = response.headers.get("content-length")
        if content_length and content_length.isdigit():
            if int(content_length) > self.settings.max_response_size:
                raise PayloadTooLargeError(
                    f"Response too large: {content_length} bytes", int(content_length)
                )

        return response

    async def request(
        self,
        method: str,
        action: str,
        params: Optional[Dict[str, Any]] = None,
        cacheable: bool = True,
        credential: Optional[SessionCredential] = None,
    ) -> Any:
        """Call a portal action and return the envelope's ``result``.

        Args:
            method: "GET" (params in the query string) or "POST" (JSON body)
            action: Action endpoint name, e.g. ``package_show``
            params: Query parameters or request body
            cacheable: Whether a GET may be served from and stored in the cache
            credential: Session credential overriding the static API key and URL

        Returns:
            The ``result`` field of the envelope, or ``{}`` when absent

        Raises:
            UpstreamHttpError: If the HTTP status is not 2xx
            UpstreamConnectionError: If the portal could not be reached
            UpstreamApiError: If the envelope reports ``success: false``
        """
        method = method.upper()
        if method not in ("GET", "POST"):
            raise ValidationError("Method must be GET or POST", field="method", value=method)
        if not action or not isinstance(action, str):
            raise ValidationError("Action must be a non-empty string", field="action")

        params = dict(params or {})
        use_cache = method == "GET" and cacheable
        cache_key = make_cache_key(action, params)

        if use_cache:
            entry = self.cache.get(cache_key)
            if entry is not None:
                self.logger.debug(
                    f"Cache hit for {action}",
                    extra={"component": "cache", "cache_key": cache_key},
                )
                return entry.payload

        url = self.action_url(action, credential)
        start_time = time.time()

        try:
            response = await self._send(method, url, params, self._headers(credential))
        except UpstreamConnectionError:
            log_api_call(
                self.logger,
                f"portal_{action}",
                url,
                (time.time() - start_time) * 1000,
                error_code="NETWORK_ERROR",
                method=method,
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        if not response.is_success:
            log_api_call(
                self.logger,
                f"portal_{action}",
                url,
                duration_ms,
                status_code=response.status_code,
                error_code="HTTP_ERROR",
                method=method,
            )
            raise UpstreamHttpError(
                response.status_code,
                response.reason_phrase,
                url,
                error_body=_envelope_error(response),
            )

        try:
            data = response.json()
        except ValueError:
            log_api_call(
                self.logger,
                f"portal_{action}",
                url,
                duration_ms,
                status_code=response.status_code,
                error_code="INVALID_JSON",
                method=method,
            )
            raise UpstreamApiError("Invalid JSON response", action=action)

        if not isinstance(data, dict) or not data.get("success", False):
            error_body = data.get("error") if isinstance(data, dict) else data
            log_api_call(
                self.logger,
                f"portal_{action}",
                url,
                duration_ms,
                status_code=response.status_code,
                error_code="API_ERROR",
                method=method,
            )
            raise UpstreamApiError(error_body, action=action)

        result = data.get("result")
        if result is None:
            result = {}

        if use_cache:
            self.cache.put(cache_key, result)

        log_api_call(
            self.logger,
            f"portal_{action}",
            url,
            duration_ms,
            status_code=response.status_code,
            method=method,
            cached=use_cache,
        )

        return result

    async def fetch_resource(self, url: str) -> RawResource:
        """Download a resource file for preview. Never cached, never authenticated."""
        if not url or not url.startswith(("http://", "https://")):
            raise ValidationError("Resource URL must be an absolute http(s) URL", field="url", value=url)

        start_time = time.time()
        response = await self._send("GET", url, headers={"User-Agent": USER_AGENT})
        duration_ms = (time.time() - start_time) * 1000

        if not response.is_success:
            log_api_call(
                self.logger,
                "resource_download",
                url,
                duration_ms,
                status_code=response.status_code,
                error_code="HTTP_ERROR",
            )
            raise UpstreamHttpError(response.status_code, response.reason_phrase, url)

        if len(response.content) > self.settings.max_response_size:
            raise PayloadTooLargeError(
                f"Resource too large: {len(response.content)} bytes", len(response.content)
            )

        log_api_call(
            self.logger,
            "resource_download",
            url,
            duration_ms,
            status_code=response.status_code,
            size=len(response.content),
        )

        return RawResource(
            url=url,
            content_type=response.headers.get("content-type", "").lower(),
            text=response.text,
        )

    async def health_check(self) -> Dict[str, Any]:
        """Perform a health check against ``status_show``."""
        try:
            result = await self.request("GET", "status_show", cacheable=False)
            return {
                "status": "healthy",
                "portal_api": "available",
                "timestamp": time.time(),
                "details": result,
            }
        except Exception as e:
            self.logger.error(f"Health check failed: {e}")
            return {
                "status": "unhealthy",
                "portal_api": "unavailable",
                "timestamp": time.time(),
                "error": str(e),
            }


def _envelope_error(response: httpx.Response) -> Any:
    """Pull the ``error`` member out of a failed response body, if any."""
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        return data.get("error")
    return None
