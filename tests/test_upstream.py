import httpx
import pytest
from http_client import HttpClient

from catknow.cache import MemoryCache
from catknow.errors import CatalogError
from catknow.upstream import ExternalCatalogClient, fetch_with_cache

def catalog_for(handler, api_key="k"):
    return ExternalCatalogClient.create("https://api.thecatapi.com/v1", api_key,
                                        transport=httpx.MockTransport(handler))

def test_url_for_keeps_parameter_order():
    catalog = ExternalCatalogClient(HttpClient("https://api.thecatapi.com/v1/"))
    url = catalog.url_for("/images/search", {"page": 1, "limit": 12, "category_ids": "5"})
    assert url == "https://api.thecatapi.com/v1/images/search?page=1&limit=12&category_ids=5"
    assert catalog.url_for("/categories") == "https://api.thecatapi.com/v1/categories"

@pytest.mark.asyncio
async def test_bypass_cache_skips_read_and_write():
    calls = []

    def handler(request):
        calls.append(request)
        assert request.headers["x-api-key"] == "k"
        return httpx.Response(200, json=[{"id": 1, "name": "hats"}])

    cache = MemoryCache()
    async with catalog_for(handler) as catalog:
        await fetch_with_cache(cache, catalog, "/categories")
        await fetch_with_cache(cache, catalog, "/categories")
        await fetch_with_cache(cache, catalog, "/categories", bypass_cache=True)

    assert len(calls) == 2
    assert len(cache) == 1

@pytest.mark.asyncio
async def test_only_get_is_proxied():
    async with catalog_for(lambda r: httpx.Response(200, json={})) as catalog:
        with pytest.raises(CatalogError) as info:
            await fetch_with_cache(MemoryCache(), catalog, "/votes", method="POST")
    assert info.value.status == 405

@pytest.mark.asyncio
async def test_missing_api_key_sends_no_header():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[])

    async with catalog_for(handler, api_key=None) as catalog:
        assert await catalog.get("/categories") == []
    assert "x-api-key" not in seen[0].headers
