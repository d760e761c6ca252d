"""
Terminal browsing: drives the loader + sentinel the way a scrolling list does.

Each settled page is printed; the new rows push the sentinel below the fold, and
"scrolling to the end" brings it back into view, which asks for the next page.
"""
from __future__ import annotations
import asyncio
from functools import partial
from typing import Callable, Optional

from .loader import IncrementalLoader
from .models import Breed, CatImage, Category
from .sentinel import ViewportSentinel
from .service import CatService

Echo = Callable[[str], None]

def format_cat_line(cat: CatImage) -> str:
    breeds = ", ".join(b.name for b in cat.breeds) or "-"
    return f"{cat.id:<12} {breeds:<30} {cat.url}"

def format_category(category: Category) -> str:
    return f"{category.id:>4}  {category.name}"

def format_breed(breed: Breed) -> list[str]:
    lines = [f"{breed.name}" + (f" ({breed.origin})" if breed.origin else "")]
    if breed.temperament:
        lines.append(f"  temperament : {breed.temperament}")
    if breed.life_span:
        lines.append(f"  life span   : {breed.life_span} years")
    for name, score in breed.traits().items():
        lines.append(f"  {name.replace('_', ' '):<18}{'*' * score}")
    if breed.description:
        lines.append(f"  {breed.description}")
    if breed.wikipedia_url:
        lines.append(f"  {breed.wikipedia_url}")
    return lines

def pages_loaded(loader: IncrementalLoader) -> int:
    return loader.state.cursor - loader.initial_page + 1

async def browse(service: CatService, category_id: Optional[str], limit: int, max_pages: int,
                 echo: Echo = print) -> IncrementalLoader[CatImage]:
    """Load up to `max_pages` pages through the sentinel, echoing rows as they arrive."""
    loader: IncrementalLoader[CatImage] = IncrementalLoader(
        partial(_fetch, service, category_id), limit, key=category_id or "",
    )
    shown = 0

    def render(ld: IncrementalLoader) -> None:
        nonlocal shown
        fresh = ld.items[shown:]
        for cat in fresh:
            echo(format_cat_line(cat))
        shown = len(ld.items)
        if fresh:
            sentinel.set_visible(False)

    # subscribed before the sentinel so new rows hide it before it rearms
    loader.subscribe(render)
    sentinel = ViewportSentinel.for_loader(loader)

    await loader.load_next()
    while pages_loaded(loader) < max_pages:
        if not sentinel.observe(0):
            break
        await asyncio.gather(*list(sentinel.pending))
    return loader

async def _fetch(service: CatService, category_id: Optional[str], page: int, limit: int):
    return await service.get_cats(page, limit, category_id)
