import pytest
from catknow.browse import browse, format_breed, format_cat_line
from catknow.errors import UpstreamError
from catknow.models import Breed, CatImage

def cat(i, breed="Bengal"):
    breeds = [Breed(name=breed)] if breed else []
    return CatImage(id=f"c{i}", url=f"https://x/c{i}.jpg", breeds=breeds)

class FakeService:
    def __init__(self, pages, fail_pages=()):
        self._pages = pages
        self.fail_pages = set(fail_pages)
        self.calls = []

    async def get_cats(self, page, limit, category_id=None):
        self.calls.append((page, limit, category_id))
        if page in self.fail_pages:
            raise UpstreamError("Bad Gateway", status=502)
        return self._pages.get(page, [])

@pytest.mark.asyncio
async def test_browse_stops_at_requested_page_count():
    service = FakeService({p: [cat(p * 2), cat(p * 2 + 1)] for p in range(5)})
    lines = []

    loader = await browse(service, "5", 2, 3, echo=lines.append)

    assert service.calls == [(0, 2, "5"), (1, 2, "5"), (2, 2, "5")]
    assert len(lines) == 6
    assert lines[0].startswith("c0")
    assert loader.state.has_more is True

@pytest.mark.asyncio
async def test_browse_stops_when_results_run_out():
    service = FakeService({0: [cat(0), cat(1)], 1: [cat(2, breed=None)]})
    lines = []

    loader = await browse(service, None, 2, 10, echo=lines.append)

    assert len(service.calls) == 2
    assert len(loader.items) == 3
    assert loader.state.has_more is False
    assert " - " in lines[-1]

@pytest.mark.asyncio
async def test_browse_does_not_retry_a_failed_page():
    service = FakeService({0: [cat(0), cat(1)]}, fail_pages={1})

    loader = await browse(service, None, 2, 10, echo=lambda line: None)

    assert len(service.calls) == 2
    assert loader.state.error.status == 502
    assert len(loader.items) == 2

def test_format_breed_lists_scored_traits():
    breed = Breed(name="Abyssinian", origin="Egypt", life_span="14 - 15", energy_level=5, grooming=1)
    lines = format_breed(breed)
    assert lines[0] == "Abyssinian (Egypt)"
    assert "  life span   : 14 - 15 years" in lines
    assert any(line.strip().startswith("energy level") and line.endswith("*****") for line in lines)
    assert format_cat_line(cat(7)).split()[:2] == ["c7", "Bengal"]
