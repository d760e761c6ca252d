"""
Client for the catknow proxy: the data source the incremental loader pages through.

Provides a typed interface for:
- Listing categories (`get_categories`)
- Fetching one page of images, optionally filtered by category (`get_cats`)
- Fetching a single image with breed details (`get_cat_details`)

Responses are cached client-side for five minutes, keyed by request URL.
Proxy error envelopes come back as CatalogError with the proxy's code and status.
"""
from __future__ import annotations
from typing import Any, List, Optional

import httpx
from pydantic import TypeAdapter, ValidationError as SchemaError

from http_client import HttpClient

from .cache import MemoryCache, ResponseCache
from .errors import INVALID_PAYLOAD, CatalogError, TransportError, UpstreamError, ValidationError
from .models import CATEGORIES, PAGE, Category, CatImage

IMAGE = TypeAdapter(CatImage)

class CatService:

    def __init__(self, http: HttpClient, cache: Optional[ResponseCache] = None):
        self.http = http
        self.cache = cache if cache is not None else MemoryCache()

    async def _get(self, path: str, params: Optional[dict] = None) -> Any:
        key = str(httpx.URL(self.http.base_url + path, params=params or {}))
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        try:
            resp = await self.http.request("GET", path, params=params or {})
        except httpx.HTTPStatusError as e:
            try:
                body = e.response.json()
            except ValueError:
                body = None
            raise CatalogError.from_envelope(e.response.status_code, body) from e
        except httpx.HTTPError as e:
            raise TransportError(f"proxy unreachable: {e}") from e
        try:
            data = resp.json()
        except ValueError:
            raise UpstreamError("proxy returned a non-JSON payload", code=INVALID_PAYLOAD) from None
        self.cache.put(key, data)
        return data

    @staticmethod
    def build_cat_query(page: int, limit: int, category_id: Optional[str] = None) -> dict[str, Any]:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if category_id:
            params["category_ids"] = category_id
        else:
            params["has_breeds"] = 1
        return params

    async def get_categories(self) -> List[Category]:
        return _parse(CATEGORIES, await self._get("/categories"))

    async def get_cats(self, page: int, limit: int, category_id: Optional[str] = None) -> List[CatImage]:
        data = await self._get("/cats", self.build_cat_query(page, limit, category_id))
        return _parse(PAGE, data)

    async def get_cat_details(self, cat_id: str) -> CatImage:
        if not cat_id:
            raise ValidationError("Cat ID is required")
        return _parse(IMAGE, await self._get(f"/cats/{cat_id}"))

    def clear_cache(self) -> None:
        self.cache.clear()

def _parse(adapter: TypeAdapter, data: Any) -> Any:
    try:
        return adapter.validate_python(data)
    except SchemaError:
        raise UpstreamError("unexpected payload shape", code=INVALID_PAYLOAD) from None
