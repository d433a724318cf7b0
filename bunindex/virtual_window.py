"""Which slice of a long bundle to materialise.

A bundle preview can run to thousands of pages. Only the items inside the
viewport (plus an overscan buffer either side) are built; padding above and
below stands in for the rest so the scroll extent stays correct.
"""

import logging
import math
from collections.abc import Callable
from typing import NamedTuple, TypeVar

from bunindex.scheduler import Scheduler, TimerHandle, scheduler_lock

bunindex_logger = logging.getLogger("bunindex")

T = TypeVar("T")

MAX_ITEMS = 2**31 - 1


class VirtualWindow(NamedTuple):
    start_index: int
    end_index: int
    top_padding: float
    bottom_padding: float

    def should_render(self, index: int) -> bool:
        return self.start_index <= index < self.end_index

    def indices(self) -> range:
        return range(self.start_index, self.end_index)

    @property
    def size(self) -> int:
        return self.end_index - self.start_index


def _number(value, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        return default
    return value


def _clamp_count(value) -> int:
    value = _number(value, 0)
    if value <= 0:
        return 0
    return MAX_ITEMS if math.isinf(value) else int(value)


def compute_virtual_window(total_items: int, item_height: float, scroll_offset: float, viewport_height: float, overscan: int) -> VirtualWindow:
    """Compute the contiguous [start, end) range to build, with spacer sizes.

    Out-of-range inputs are clamped rather than rejected: a negative scroll is
    treated as 0, a non-positive item height as 1, and an infinite scroll or
    viewport as the full length of the list.
    """
    total_items = _clamp_count(total_items)
    overscan = _clamp_count(overscan)
    item_height = _number(item_height, 1.0)
    if math.isinf(item_height) or item_height <= 0:
        item_height = 1.0
    full_extent = total_items * item_height
    scroll_offset = max(0.0, _number(scroll_offset, 0.0))
    scroll_offset = min(scroll_offset, full_extent)
    viewport_height = max(0.0, _number(viewport_height, 0.0))
    viewport_height = min(viewport_height, full_extent)

    start_index = max(0, math.floor(scroll_offset / item_height) - overscan)
    start_index = min(start_index, total_items)
    visible_count = math.ceil(viewport_height / item_height)
    end_index = min(total_items, start_index + visible_count + 2 * overscan)

    top_padding = start_index * item_height
    bottom_padding = max(0, (total_items - end_index) * item_height)
    return VirtualWindow(start_index, end_index, top_padding, bottom_padding)


class VirtualWindowController:
    """Keeps a VirtualWindow current under scroll and resize signals.

    Signals only record the latest value and request a frame; the window is
    recomputed at most once per frame however many signals arrive, and
    on_change only fires when the index range actually moved.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        total_items: int = 0,
        item_height: float = 1.0,
        overscan: int = 5,
        viewport_height: float = 0.0,
        on_change: Callable[[VirtualWindow], None] | None = None,
        frame_interval_ms: float = 16,
    ):
        self.scheduler = scheduler
        self.total_items = total_items
        self.item_height = item_height
        self.overscan = overscan
        self.viewport_height = viewport_height
        self.scroll_offset = 0.0
        self.on_change = on_change
        self.frame_interval_ms = frame_interval_ms
        self.recompute_count = 0
        self._frame: TimerHandle | None = None
        self._disposed = False
        self.window = self._compute()

    def _compute(self) -> VirtualWindow:
        return compute_virtual_window(self.total_items, self.item_height, self.scroll_offset, self.viewport_height, self.overscan)

    @property
    def frame_pending(self) -> bool:
        return self._frame is not None

    def _request_frame(self) -> None:
        if self._disposed or self._frame is not None:
            return
        self._frame = self.scheduler.call_later(self.frame_interval_ms, self._on_frame)

    def _on_frame(self) -> None:
        with scheduler_lock(self.scheduler):
            self._frame = None
            if self._disposed:
                return
            self.recompute_count += 1
            window = self._compute()
            if window[:2] != self.window[:2]:
                bunindex_logger.debug(f"[VWC]..Window moved to [{window.start_index}, {window.end_index})")
                self.window = window
                if self.on_change:
                    self.on_change(window)
            else:
                self.window = window

    def on_scroll(self, scroll_offset: float) -> None:
        with scheduler_lock(self.scheduler):
            self.scroll_offset = scroll_offset
            self._request_frame()

    def on_resize(self, viewport_height: float) -> None:
        with scheduler_lock(self.scheduler):
            self.viewport_height = viewport_height
            self._request_frame()

    def set_total_items(self, total_items: int) -> None:
        with scheduler_lock(self.scheduler):
            self.total_items = total_items
            self._request_frame()

    def set_item_height(self, item_height: float) -> None:
        """Replace the estimated item height with one measured from the layout container."""
        with scheduler_lock(self.scheduler):
            self.item_height = item_height
            self._request_frame()

    def refresh(self) -> VirtualWindow:
        """Recompute immediately, dropping any pending frame."""
        with scheduler_lock(self.scheduler):
            if self._frame is not None:
                self._frame.cancel()
                self._frame = None
            self._on_frame()
            return self.window

    def materialize(self, factory: Callable[[int], T]) -> list[T]:
        """Build the items of the current window, and only those."""
        with scheduler_lock(self.scheduler):
            window = self.window
        return [factory(index) for index in window.indices()]

    def dispose(self) -> None:
        with scheduler_lock(self.scheduler):
            if self._frame is not None:
                self._frame.cancel()
                self._frame = None
            self._disposed = True
