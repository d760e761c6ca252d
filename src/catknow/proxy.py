"""
Catalog proxy: read-only FastAPI front for TheCatAPI.

Endpoints:
- GET /categories      -> breed categories
- GET /cats            -> one page of images (page, limit, category_ids, has_breeds)
- GET /cats/{cat_id}   -> a single image with breed details

Each request is rate-limited per caller, validated, served through the response
cache, schema-checked, and returned as the upstream JSON verbatim. Failures come
back as {"error": message, "code": code} with an HTTP status.

Usage:
    catknow serve --port 8000
"""
from __future__ import annotations
import math, sys
from functools import partial
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter, ValidationError as SchemaError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .cache import ResponseCache, build_cache
from .config import ProxySettings
from .errors import INVALID_PAYLOAD, CatalogError, RateLimitError, UpstreamError
from .models import CATEGORIES, PAGE, CatImage
from .rate_limit import RateLimiter
from .upstream import ExternalCatalogClient, fetch_with_cache
from .utils import (MAX_LIMIT, client_identity, parse_category_ids, parse_has_breeds,
                    parse_int_param, validate_cat_id)

DEFAULT_PAGE = 0
DEFAULT_LIMIT = 10

IMAGE = TypeAdapter(CatImage)

router = APIRouter()

def _check_rate(request: Request) -> None:
    request.app.state.limiter.enforce(client_identity(request.headers))

def _validated(adapter: TypeAdapter, payload: Any, what: str) -> Any:
    try:
        adapter.validate_python(payload)
    except SchemaError as e:
        print(f"[warn] upstream {what} payload failed validation: {e.error_count()} error(s)", file=sys.stderr)
        raise UpstreamError("Upstream returned an unexpected payload", code=INVALID_PAYLOAD) from None
    return payload

async def _proxy(request: Request, path: str, adapter: TypeAdapter, what: str,
                 params: Optional[dict] = None) -> JSONResponse:
    state = request.app.state
    data = await fetch_with_cache(
        state.cache, state.catalog, path, params,
        validate=partial(_validated, adapter, what=what),
    )
    return JSONResponse(data)

def build_search_params(page: Optional[str], limit: Optional[str], category_ids: Optional[str],
                        has_breeds: Optional[str]) -> dict[str, Any]:
    """Validated upstream query for /images/search, in a fixed key order."""
    params: dict[str, Any] = {
        "page": parse_int_param("page", page, DEFAULT_PAGE),
        "limit": parse_int_param("limit", limit, DEFAULT_LIMIT, minimum=1, maximum=MAX_LIMIT),
    }
    categories = parse_category_ids(category_ids)
    if categories:
        params["category_ids"] = categories
    breeds = parse_has_breeds(has_breeds)
    if breeds is not None:
        params["has_breeds"] = breeds
    return params

@router.get("/categories")
async def list_categories(request: Request):
    _check_rate(request)
    return await _proxy(request, "/categories", CATEGORIES, "categories")

@router.get("/cats")
async def list_cats(
    request: Request,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    category_ids: Optional[str] = Query(None),
    has_breeds: Optional[str] = Query(None),
):
    # raw strings so bad numbers surface as our 400 envelope, not a 422
    _check_rate(request)
    params = build_search_params(page, limit, category_ids, has_breeds)
    return await _proxy(request, "/images/search", PAGE, "image search", params)

@router.get("/cats/{cat_id}")
async def get_cat(request: Request, cat_id: str):
    _check_rate(request)
    cat_id = validate_cat_id(cat_id.strip())
    return await _proxy(request, f"/images/{cat_id}", IMAGE, "image")

async def _catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    print(f"[error] {request.method} {request.url.path}: {exc!r}", file=sys.stderr)
    headers = {}
    if isinstance(exc, RateLimitError):
        headers["Retry-After"] = str(max(1, math.ceil(exc.retry_after_ms / 1000)))
    return JSONResponse(exc.to_envelope(), status_code=exc.status, headers=headers)

async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
    return JSONResponse({"error": str(exc.detail), "code": code}, status_code=exc.status_code)

async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return await _catalog_error_handler(request, CatalogError.from_exception(exc))

def create_app(
    settings: Optional[ProxySettings] = None,
    *,
    catalog: Optional[ExternalCatalogClient] = None,
    cache: Optional[ResponseCache] = None,
    limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    """Build the proxy app; collaborators not passed in are built from settings."""
    settings = settings or ProxySettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.catalog is not None:
            yield
            return
        async with ExternalCatalogClient.create(
            settings.upstream_url,
            settings.api_key,
            retries=settings.retries,
            connect_timeout=settings.connect_timeout,
            read_timeout=settings.read_timeout,
        ) as owned:
            app.state.catalog = owned
            print(f"[*] Proxying {settings.upstream_url} (cache={type(app.state.cache).__name__}, "
                  f"limit={settings.rate_limit}/{settings.rate_window_ms}ms)", file=sys.stderr)
            try:
                yield
            finally:
                app.state.catalog = None

    app = FastAPI(title="catknow proxy", version="0.1.0", lifespan=lifespan)
    app.state.catalog = catalog
    app.state.cache = cache if cache is not None else build_cache(settings.cache_dir, settings.cache_ttl)
    app.state.limiter = limiter or RateLimiter(settings.rate_limit, settings.rate_window_ms)

    app.include_router(router)
    app.add_exception_handler(CatalogError, _catalog_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
    return app
