"""
Async wrapper around TheCatAPI endpoints, plus the cached fetch path the proxy uses.

- ExternalCatalogClient.get: one GET, JSON body or a CatalogError
- ExternalCatalogClient.url_for: deterministic full URL, also the cache key
- fetch_with_cache: read-through cache for side-effect-free requests
"""
from __future__ import annotations
import sys
from typing import Any, Callable, Mapping, Optional

import httpx

from http_client import HttpClient

from .cache import ResponseCache
from .errors import INVALID_PAYLOAD, CatalogError, TransportError, UpstreamError

DEFAULT_UPSTREAM_URL = "https://api.thecatapi.com/v1"

Params = Optional[Mapping[str, Any]]

class ExternalCatalogClient:

    def __init__(self, http: HttpClient):
        self.http = http

    @classmethod
    def create(cls, base_url: str, api_key: Optional[str], **http_kwargs) -> "ExternalCatalogClient":
        headers = {"x-api-key": api_key} if api_key else {}
        return cls(HttpClient(base_url, default_headers=headers, **http_kwargs))

    def url_for(self, path: str, params: Params = None) -> str:
        return str(httpx.URL(self.http.base_url + path, params=dict(params or {})))

    async def get(self, path: str, params: Params = None) -> Any:
        try:
            resp = await self.http.request("GET", path, params=dict(params or {}))
        except httpx.HTTPStatusError as e:
            raise UpstreamError.from_response(e.response) from e
        except httpx.HTTPError as e:
            raise TransportError(f"upstream unreachable: {e}") from e
        try:
            return resp.json()
        except ValueError:
            print(f"[warn] non-JSON response for {path}: {resp.text[:200]}", file=sys.stderr)
            raise UpstreamError("Upstream returned a non-JSON payload", code=INVALID_PAYLOAD) from None

    async def __aenter__(self):
        await self.http.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.http.aclose()

async def fetch_with_cache(
    cache: ResponseCache,
    client: ExternalCatalogClient,
    path: str,
    params: Params = None,
    *,
    method: str = "GET",
    bypass_cache: bool = False,
    validate: Optional[Callable[[Any], Any]] = None,
) -> Any:
    """
    Serve from cache when fresh; otherwise fetch, validate and store.
    Only GET is proxied (upstream is read-only); bypass_cache skips both read and write.
    Payloads that fail `validate` raise and are never cached.
    """
    if method != "GET":
        raise CatalogError(f"method {method} is not proxied", status=405, code="METHOD_NOT_ALLOWED")

    key = client.url_for(path, params)
    if not bypass_cache:
        cached = cache.get(key)
        if cached is not None:
            return cached

    data = await client.get(path, params)
    if validate is not None:
        validate(data)
    if not bypass_cache:
        cache.put(key, data)
    return data
