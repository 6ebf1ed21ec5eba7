"""Authenticated HTTP transport for the speech service."""

from __future__ import annotations

import time
from typing import Any, Mapping, Sequence

import httpx

from volc_speech import logging_utils
from volc_speech.config import ClientConfig
from volc_speech.errors import ConfigurationError, TransportError

JSON_HEADERS = {"Content-Type": "application/json"}

QueryParams = Mapping[str, str] | Sequence[tuple[str, str]]


def _auth_header_value(access_token: str) -> str:
    value = f"Bearer; {access_token}"
    if any(c in value for c in "\r\n\x00"):
        raise ConfigurationError("access token contains control characters")
    try:
        value.encode("ascii")
    except UnicodeEncodeError as e:
        raise ConfigurationError("access token is not a valid header value") from e
    return value


class Client:
    """Dispatches one authenticated call per `call()` and returns the raw response.

    Holds only immutable configuration and the httpx connection pool, so a single
    instance can be shared by concurrently running jobs. No retries happen here.
    """

    def __init__(
        self,
        config: ClientConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        try:
            self._base_url = httpx.URL(config.base_url)
        except (httpx.InvalidURL, TypeError) as e:
            raise ConfigurationError(f"invalid base URL {config.base_url!r}: {e}") from e
        if self._base_url.scheme not in ("http", "https") or not self._base_url.host:
            raise ConfigurationError(f"base URL must be absolute http(s): {config.base_url!r}")
        self._authorization = _auth_header_value(config.access_token)
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=config.timeout_s)

    @classmethod
    def from_env(cls, http_client: httpx.AsyncClient | None = None) -> "Client":
        return cls(ClientConfig.from_env(), http_client=http_client)

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the connection pool if this client created it."""
        if self._owns_http:
            await self._http.aclose()

    def resolve(self, path: str) -> httpx.URL:
        """Resolve `path` against the base URL."""
        try:
            url = self._base_url.join(path)
        except (httpx.InvalidURL, TypeError) as e:
            raise ConfigurationError(f"cannot resolve {path!r} against {self._base_url}: {e}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise ConfigurationError(f"{path!r} does not resolve to an http(s) URL")
        return url

    async def call(
        self,
        method: str,
        path: str,
        query_params: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
        body: bytes | str | None = None,
    ) -> httpx.Response:
        url = self.resolve(path)
        request_headers = httpx.Headers(headers or {})
        # replaces any caller-supplied Authorization, whatever its casing
        request_headers["Authorization"] = self._authorization

        t0 = time.perf_counter()
        try:
            response = await self._http.request(
                method,
                url,
                params=query_params,
                headers=request_headers,
                content=body,
            )
        except httpx.HTTPError as e:
            latency_ms = (time.perf_counter() - t0) * 1000
            logging_utils.log_request(method, path, latency_ms, error=True)
            raise TransportError(f"{method} {path} failed: {e}") from e

        latency_ms = (time.perf_counter() - t0) * 1000
        logging_utils.log_request(method, path, latency_ms, status_code=response.status_code)
        return response
