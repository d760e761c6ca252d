"""
Incremental paged loader: the state machine behind an infinite list.

The loader owns an append-only item list for the current filter key, the cursor
(last page fetched), and the has_more / is_loading / error flags. Only two
operations change it:

- load_next(): fetch cursor + 1 unless a fetch is in flight or the data ran out
- reset(): drop everything and fetch the first page again (filter key changed)

A page shorter than page_size ends the list. Failures keep items and cursor,
record an ErrorInfo, and are never retried automatically; the caller triggers
load_next() or reset() again. A fetch that lands after a newer reset is dropped.
"""
from __future__ import annotations
import sys
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from .errors import CatalogError

T = TypeVar("T")

FetchPage = Callable[[int, int], Awaitable[Sequence[T]]]
Listener = Callable[["IncrementalLoader"], None]

@dataclass(frozen=True)
class ErrorInfo:
    message: str
    code: str
    status: int

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        err = CatalogError.from_exception(exc)
        return cls(err.message, err.code, err.status)

@dataclass
class LoaderState(Generic[T]):
    items: List[T] = field(default_factory=list)
    cursor: int = -1
    has_more: bool = True
    is_loading: bool = False
    error: Optional[ErrorInfo] = None

class IncrementalLoader(Generic[T]):

    def __init__(
        self,
        fetch_page: FetchPage,
        page_size: int,
        *,
        initial_page: int = 0,
        initial_items: Optional[Sequence[T]] = None,
        key: str = "",
    ):
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.fetch_page = fetch_page
        self.page_size = page_size
        self.initial_page = initial_page
        self.key = key
        self._generation = 0
        self._listeners: List[Listener] = []

        if initial_items is not None:
            # prefetched first page (e.g. rendered server-side)
            self.state: LoaderState[T] = LoaderState(
                items=list(initial_items),
                cursor=initial_page,
                has_more=len(initial_items) >= page_size,
            )
        else:
            self.state = LoaderState(cursor=initial_page - 1)

    @property
    def items(self) -> List[T]:
        return self.state.items

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(loader)` after every state change; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    async def load_next(self) -> bool:
        """Fetch and append the next page. Returns False when the call was dropped."""
        st = self.state
        if st.is_loading or not st.has_more:
            return False
        await self._fetch(st.cursor + 1, self._generation)
        return True

    async def reset(self) -> None:
        """Clear items, rewind the cursor, then fetch the first page. Supersedes any in-flight fetch."""
        self._generation += 1
        self.state = LoaderState(cursor=self.initial_page - 1)
        await self._fetch(self.initial_page, self._generation)

    async def set_key(self, key: str) -> bool:
        """Reset when the filter key changed by value; returns whether a reset happened."""
        if key == self.key:
            return False
        self.key = key
        await self.reset()
        return True

    async def _fetch(self, page: int, generation: int) -> None:
        self.state.is_loading = True
        self._notify()
        try:
            batch = await self.fetch_page(page, self.page_size)
        except Exception as e:
            if generation != self._generation:
                return
            print(f"[warn] loading page {page} (key={self.key!r}) failed: {e}", file=sys.stderr)
            self.state.error = ErrorInfo.from_exception(e)
            self.state.is_loading = False
            self._notify()
            return

        if generation != self._generation:
            return
        st = self.state
        st.items.extend(batch)
        st.has_more = len(batch) >= self.page_size
        st.cursor = page
        st.error = None
        st.is_loading = False
        self._notify()
