"""
Command-line entrypoint for catknow.

- Parses CLI args and config (env defaults)
- `serve` runs the catalog proxy under uvicorn
- `categories` / `browse` / `show` talk to a running proxy through CatService:
    browse pages through images with the incremental loader, one page per
    sentinel trigger, until --pages is reached or the results run out

Catalog errors exit with status 2; KeyboardInterrupt exits cleanly.
"""
from __future__ import annotations
import asyncio, sys

import uvicorn

from http_client import HttpClient

from .browse import browse, format_breed, format_category, format_cat_line
from .config import ProxySettings, parse_args
from .errors import CatalogError
from .proxy import create_app
from .service import CatService

def serve(args) -> None:
    settings = ProxySettings.from_args(args)
    if not settings.api_key:
        print("[warn] API_KEY is not set; upstream requests are unauthenticated", file=sys.stderr)
    print(f"""
        ====== catknow proxy ======
        Upstream       : {settings.upstream_url}
        Listening      : http://{args.host}:{args.port}
        Rate limit     : {settings.rate_limit} req / {settings.rate_window_ms} ms
        Cache          : {settings.cache_dir or 'in-process'} (ttl {settings.cache_ttl:g}s)
        ===========================
    """)
    uvicorn.run(create_app(settings), host=args.host, port=args.port)

async def run(args) -> int:
    async with HttpClient(
        base_url=args.base_url,
        connect_timeout=args.connect_timeout,
        read_timeout=args.read_timeout,
        retries=args.retries,
    ) as http:
        service = CatService(http)

        if args.command == "categories":
            for category in await service.get_categories():
                print(format_category(category))
            return 0

        if args.command == "show":
            cat = await service.get_cat_details(args.cat_id)
            print(format_cat_line(cat))
            for breed in cat.breeds:
                print("\n".join(format_breed(breed)))
            return 0

        loader = await browse(service, args.category, args.limit, args.pages)
        st = loader.state
        if st.error is not None:
            print(f"Error ({st.error.code}): {st.error.message}", file=sys.stderr)
            return 2
        if not st.items:
            print("No cats found.")
        else:
            more = "more available" if st.has_more else "end of results"
            print(f"{len(st.items)} image(s) over {st.cursor + 1} page(s), {more}.")
        return 0

def main() -> None:
    args = parse_args()
    if args.command == "serve":
        serve(args)
        return
    try:
        sys.exit(asyncio.run(run(args)))
    except CatalogError as e:
        print(f"Error ({e.code}): {e.message}", file=sys.stderr)
        sys.exit(2)
    except KeyboardInterrupt:
        print("Aborted.", file=sys.stderr)
