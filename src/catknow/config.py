from __future__ import annotations
import argparse, os
from dataclasses import dataclass
from typing import Optional

from .cache import DEFAULT_TTL
from .rate_limit import DEFAULT_LIMIT, DEFAULT_WINDOW_MS
from .upstream import DEFAULT_UPSTREAM_URL

@dataclass
class ProxySettings:
    api_key: Optional[str] = None
    upstream_url: str = DEFAULT_UPSTREAM_URL
    rate_limit: int = DEFAULT_LIMIT
    rate_window_ms: int = DEFAULT_WINDOW_MS
    cache_ttl: float = DEFAULT_TTL
    cache_dir: Optional[str] = None
    retries: int = 1
    connect_timeout: float = 5.0
    read_timeout: float = 30.0

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "ProxySettings":
        return cls(
            api_key=args.api_key,
            upstream_url=args.upstream_url,
            rate_limit=args.rate_limit,
            rate_window_ms=args.rate_window_ms,
            cache_ttl=args.cache_ttl,
            cache_dir=args.cache_dir,
            retries=args.retries,
            connect_timeout=args.connect_timeout,
            read_timeout=args.read_timeout,
        )

def _add_http_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--retries", type=int, default=int(os.getenv("MAX_RETRIES", "1")))
    p.add_argument("--connect-timeout", type=float, default=float(os.getenv("CONNECT_TIMEOUT", "5")))
    p.add_argument("--read-timeout", type=float, default=float(os.getenv("READ_TIMEOUT", "30")))

def _add_client_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--base-url", default=os.getenv("CATKNOW_BASE_URL", "http://localhost:8000"))
    _add_http_options(p)

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="catknow", description="Browse TheCatAPI through a caching, rate-limited proxy")
    sub = p.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the catalog proxy")
    serve.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"))
    serve.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    serve.add_argument("--api-key", default=os.getenv("API_KEY"))
    serve.add_argument("--upstream-url", default=os.getenv("CAT_API_BASE_URL", DEFAULT_UPSTREAM_URL))
    serve.add_argument("--rate-limit", type=int, default=int(os.getenv("RATE_LIMIT", str(DEFAULT_LIMIT))))
    serve.add_argument("--rate-window-ms", type=int, default=int(os.getenv("RATE_WINDOW_MS", str(DEFAULT_WINDOW_MS))))
    serve.add_argument("--cache-ttl", type=float, default=float(os.getenv("CACHE_TTL", str(DEFAULT_TTL))))
    serve.add_argument("--cache-dir", default=os.getenv("CACHE_DIR") or None)
    _add_http_options(serve)

    categories = sub.add_parser("categories", help="list breed categories")
    _add_client_options(categories)

    browse = sub.add_parser("browse", help="scroll through cat images page by page")
    browse.add_argument("--category", default=None, help="category id to filter by")
    browse.add_argument("--limit", type=int, default=int(os.getenv("PAGE_SIZE", "12")))
    browse.add_argument("--pages", type=int, default=3, help="stop after this many pages")
    _add_client_options(browse)

    show = sub.add_parser("show", help="print breed details for one image")
    show.add_argument("cat_id")
    _add_client_options(show)
    return p

def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
