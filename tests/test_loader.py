import asyncio
import pytest
from catknow.errors import UpstreamError
from catknow.loader import ErrorInfo, IncrementalLoader

def cats(prefix, n):
    return [f"{prefix}{i}" for i in range(n)]

class FakeSource:
    """Page fetcher with per-page results, scripted failures and optional gates."""
    def __init__(self, pages, failures=None):
        self.pages = pages
        self.failures = dict(failures or {})
        self.gates = {}
        self.calls = []

    async def __call__(self, page, limit):
        self.calls.append((page, limit))
        gate = self.gates.get(page)
        if gate is not None:
            await gate.wait()
        if self.failures.get(page, 0) > 0:
            self.failures[page] -= 1
            raise UpstreamError("Service Unavailable", status=503)
        return self.pages.get(page, [])

@pytest.mark.asyncio
async def test_short_page_ends_the_list_and_further_loads_are_noops():
    source = FakeSource({0: cats("a", 12), 1: cats("b", 5), 2: cats("c", 12)})
    loader = IncrementalLoader(source, 12)

    await loader.load_next()
    assert loader.state.has_more is True
    await loader.load_next()
    assert loader.state.has_more is False

    assert await loader.load_next() is False
    assert len(loader.items) == 17
    assert loader.items == cats("a", 12) + cats("b", 5)
    assert source.calls == [(0, 12), (1, 12)]
    assert loader.state.cursor == 1

@pytest.mark.asyncio
async def test_empty_first_page_is_the_no_results_state():
    loader = IncrementalLoader(FakeSource({}), 10)
    await loader.load_next()
    st = loader.state
    assert st.items == [] and st.has_more is False
    assert st.error is None and st.is_loading is False

@pytest.mark.asyncio
async def test_load_next_while_loading_is_dropped():
    source = FakeSource({0: cats("a", 3)})
    source.gates[0] = asyncio.Event()
    loader = IncrementalLoader(source, 3)

    first = asyncio.create_task(loader.load_next())
    await asyncio.sleep(0)
    assert loader.state.is_loading is True

    assert await loader.load_next() is False
    source.gates[0].set()
    assert await first is True

    assert len(source.calls) == 1
    assert loader.items == cats("a", 3)
    assert loader.state.is_loading is False

@pytest.mark.asyncio
async def test_failure_keeps_items_and_cursor_and_is_not_retried():
    source = FakeSource({0: cats("a", 2), 1: cats("b", 2)}, failures={1: 1})
    loader = IncrementalLoader(source, 2)
    await loader.load_next()

    await loader.load_next()
    st = loader.state
    assert st.items == cats("a", 2)
    assert st.cursor == 0
    assert st.error == ErrorInfo("Service Unavailable", "EXTERNAL_API_ERROR", 503)
    assert st.is_loading is False
    assert len(source.calls) == 2

    # user-initiated retry
    await loader.load_next()
    assert loader.items == cats("a", 2) + cats("b", 2)
    assert loader.state.error is None
    assert loader.state.cursor == 1

@pytest.mark.asyncio
async def test_reset_clears_items_and_refetches_first_page():
    source = FakeSource({0: cats("a", 2), 1: cats("b", 2)})
    loader = IncrementalLoader(source, 2, key="")
    await loader.load_next()
    await loader.load_next()

    seen_empty = []
    loader.subscribe(lambda ld: seen_empty.append(ld.items == []))
    await loader.reset()

    assert seen_empty[0] is True
    assert loader.items == cats("a", 2)
    assert loader.state.cursor == 0
    assert source.calls[-1] == (0, 2)

@pytest.mark.asyncio
async def test_set_key_compares_by_value():
    source = FakeSource({0: cats("a", 1)})
    loader = IncrementalLoader(source, 5, key="5")
    await loader.load_next()

    assert await loader.set_key("".join(["5"])) is False
    assert len(source.calls) == 1

    assert await loader.set_key("14") is True
    assert len(source.calls) == 2

@pytest.mark.asyncio
async def test_rapid_double_reset_keeps_only_latest_key():
    results = {"b": cats("b", 4), "c": cats("c", 2)}
    gates = {"b": asyncio.Event(), "c": asyncio.Event()}

    async def fetch(page, limit):
        key = loader.key
        await gates[key].wait()
        return results[key]

    loader = IncrementalLoader(fetch, 4, initial_items=cats("a", 4), key="a")

    to_b = asyncio.create_task(loader.set_key("b"))
    await asyncio.sleep(0)
    to_c = asyncio.create_task(loader.set_key("c"))
    await asyncio.sleep(0)
    assert loader.items == []

    gates["b"].set()
    await to_b
    assert loader.items == []          # superseded result dropped
    assert loader.state.is_loading is True

    gates["c"].set()
    await to_c
    assert loader.items == cats("c", 2)
    assert loader.state.has_more is False
    assert loader.state.is_loading is False

@pytest.mark.asyncio
async def test_failed_reset_can_be_retried_with_load_next():
    source = FakeSource({0: cats("a", 2)}, failures={0: 1})
    loader = IncrementalLoader(source, 2)
    await loader.reset()
    assert loader.items == []
    assert loader.state.error is not None
    assert loader.state.has_more is True

    await loader.load_next()
    assert loader.items == cats("a", 2)
    assert source.calls == [(0, 2), (0, 2)]

@pytest.mark.asyncio
async def test_initial_items_count_as_initial_page():
    source = FakeSource({1: cats("b", 1)})
    loader = IncrementalLoader(source, 3, initial_items=cats("a", 3))
    assert loader.state.cursor == 0 and loader.state.has_more is True

    await loader.load_next()
    assert source.calls == [(1, 3)]
    assert loader.items == cats("a", 3) + cats("b", 1)

    short = IncrementalLoader(source, 3, initial_items=cats("a", 2))
    assert short.state.has_more is False

@pytest.mark.asyncio
async def test_listeners_see_loading_then_settled_and_can_unsubscribe():
    loader = IncrementalLoader(FakeSource({0: cats("a", 1), 1: []}), 1)
    flags = []
    unsubscribe = loader.subscribe(lambda ld: flags.append(ld.state.is_loading))

    await loader.load_next()
    assert flags == [True, False]

    unsubscribe()
    await loader.load_next()
    assert flags == [True, False]

@pytest.mark.asyncio
async def test_unexpected_exceptions_become_generic_error_info():
    async def broken(page, limit):
        raise KeyError("items")

    loader = IncrementalLoader(broken, 10)
    await loader.load_next()
    assert loader.state.error.code == "INTERNAL_SERVER_ERROR"
    assert loader.state.error.status == 500

def test_page_size_must_be_positive():
    with pytest.raises(ValueError):
        IncrementalLoader(FakeSource({}), 0)
