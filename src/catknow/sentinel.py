"""
Viewport sentinel: the boundary marker whose visibility asks for the next page.

The renderer reports how far the sentinel is from the visible end of the
scroll container (or just a visible/hidden flag). Crossing into view, within
`root_margin` pixels of lookahead, fires `on_wants_more` once; staying in view
does not fire again until the sentinel leaves and comes back, or `rearm()`
re-observes it.
"""
from __future__ import annotations
import asyncio
from typing import Callable, Set

DEFAULT_ROOT_MARGIN = 200.0

class ViewportSentinel:

    def __init__(
        self,
        on_wants_more: Callable[[], None],
        *,
        root_margin: float = DEFAULT_ROOT_MARGIN,
        is_suppressed: Callable[[], bool] = lambda: False,
    ):
        self.on_wants_more = on_wants_more
        self.root_margin = root_margin
        self.is_suppressed = is_suppressed
        self.visible = False
        self.pending: Set[asyncio.Task] = set()

    def observe(self, distance_to_end: float) -> bool:
        """`distance_to_end` is px from the viewport's bottom edge to the sentinel (<= 0 means on screen)."""
        return self.set_visible(distance_to_end <= self.root_margin)

    def set_visible(self, visible: bool) -> bool:
        entered = visible and not self.visible
        self.visible = visible
        return self._fire() if entered else False

    def rearm(self) -> bool:
        """Re-observe without movement; fires if still in view and no longer suppressed."""
        return self._fire() if self.visible else False

    def _fire(self) -> bool:
        if self.is_suppressed():
            return False
        self.on_wants_more()
        return True

    @classmethod
    def for_loader(cls, loader, *, root_margin: float = DEFAULT_ROOT_MARGIN) -> "ViewportSentinel":
        """
        Wire a sentinel to an IncrementalLoader: firing schedules load_next() on the
        running loop, and every settled load rearms it so a still-visible sentinel
        keeps pulling pages until it is pushed out of view or the data runs out.
        A recorded error also suppresses it; retrying is left to the user.
        """
        def wants_more() -> None:
            task = asyncio.get_running_loop().create_task(loader.load_next())
            sentinel.pending.add(task)
            task.add_done_callback(sentinel.pending.discard)

        def suppressed() -> bool:
            st = loader.state
            return st.is_loading or not st.has_more or st.error is not None

        sentinel = cls(wants_more, root_margin=root_margin, is_suppressed=suppressed)

        def on_change(ld) -> None:
            if not ld.state.is_loading:
                sentinel.rearm()

        loader.subscribe(on_change)
        return sentinel
