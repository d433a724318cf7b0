"""Page counts for editable entries, from measured content height.

The editing surface reports how tall the rendered content is; the estimator
turns that into a whole number of pages and writes it back to the EntryStore.
Measurements arrive on every keystroke, so evaluation is debounced per entry
and only changed counts are written.
"""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from bunindex.engine_config import EngineConfig
from bunindex.entry import is_editable
from bunindex.entry_store import EntryStore
from bunindex.errors import MeasurementError, NotFoundError
from bunindex.scheduler import Scheduler, TimerHandle, scheduler_lock

bunindex_logger = logging.getLogger("bunindex")


class MeasurementSource(Protocol):
    def measure(self) -> float: ...


class FixedHeight:
    """A MeasurementSource that returns whatever height it was last given."""

    def __init__(self, height: float = 0.0):
        self.height = height

    def measure(self) -> float:
        return self.height


def _check_dimension(name: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MeasurementError(f"{name} must be a number, got {value!r}", value=value)
    if not math.isfinite(value) or value < 0:
        raise MeasurementError(f"{name} must be finite and non-negative, got {value!r}", value=value)
    return float(value)


def estimate_page_count(measured_height: float, page_height: float, margin: float) -> int:
    """Convert a rendered content height into a page count.

    Content that fits within one usable page (page height less the header and
    footer reserve) is always one page, however small; beyond that it is the
    number of usable page heights needed to hold it.
    """
    measured_height = _check_dimension("measured height", measured_height)
    page_height = _check_dimension("page height", page_height)
    margin = _check_dimension("margin", margin)

    usable_height = page_height - margin
    if usable_height <= 0:
        raise MeasurementError(f"Margin {margin} leaves no usable space on a {page_height} high page", value=usable_height)

    if measured_height <= usable_height:
        return 1
    return math.ceil(measured_height / usable_height)


class DebounceState(Enum):
    IDLE = "idle"
    PENDING = "pending"
    CANCELLED = "cancelled"


@dataclass
class EntryObservation:
    """Debounce bookkeeping for one observed entry."""

    entry_id: str
    source: MeasurementSource
    last_reported: int
    state: DebounceState = DebounceState.IDLE
    pending_height: float | None = None
    deadline: float | None = None
    timer: TimerHandle | None = field(default=None, repr=False)
    # bumped on every schedule; a timer only evaluates if it carries the current token
    token: int = 0

    def schedule(self, height: float | None, deadline: float, timer: TimerHandle, token: int) -> None:
        if self.timer is not None:
            self.timer.cancel()
        self.pending_height = height
        self.deadline = deadline
        self.timer = timer
        self.token = token
        self.state = DebounceState.PENDING

    def settle(self) -> None:
        self.pending_height = None
        self.deadline = None
        self.timer = None
        self.state = DebounceState.IDLE

    def cancel(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
        self.pending_height = None
        self.deadline = None
        self.timer = None
        self.state = DebounceState.CANCELLED


ErrorCallback = Callable[[str, MeasurementError], None]


class PageBreakEstimator:
    def __init__(self, store: EntryStore, scheduler: Scheduler, config: EngineConfig | None = None, on_error: ErrorCallback | None = None):
        self.store = store
        self.scheduler = scheduler
        self.config = config or EngineConfig()
        self.on_error = on_error
        self._observations: dict[str, EntryObservation] = {}

    def _estimate(self, height: float) -> int:
        return estimate_page_count(height, self.config.page_height, self.config.page_margin)

    def state_of(self, entry_id: str) -> DebounceState:
        with scheduler_lock(self.scheduler):
            observation = self._observations.get(entry_id)
            return observation.state if observation else DebounceState.CANCELLED

    def observe(self, entry_id: str, source: MeasurementSource) -> int:
        """Start observing an editable entry. The first measurement is taken at once, without debouncing.

        Returns the page count now held by the store for the entry.
        """
        with scheduler_lock(self.scheduler):
            entry = self.store.get(entry_id)
            if not is_editable(entry):
                bunindex_logger.warning(f"[PBE]Entry {entry_id} ({entry.row_type.value}) is not editable; its page count is not measured")
                return entry.page_count

            self.unobserve(entry_id)
            observation = EntryObservation(entry_id=entry_id, source=source, last_reported=entry.page_count)
            self._observations[entry_id] = observation

            try:
                initial = self._estimate(source.measure())
            except MeasurementError as e:
                self._report_error(entry_id, e)
                return entry.page_count

            bunindex_logger.debug(f"[PBE]..Observing {entry_id}: initial page count {initial}")
            self._commit(observation, initial)
            return observation.last_reported

    def notify_content_changed(self, entry_id: str, height: float | None = None) -> None:
        """Record a new measurement; evaluation happens once the quiescence window passes without another one."""
        with scheduler_lock(self.scheduler):
            observation = self._observations.get(entry_id)
            if observation is None or observation.state == DebounceState.CANCELLED:
                bunindex_logger.debug(f"[PBE]..Ignoring measurement for unobserved entry {entry_id}")
                return

            delay = self.config.debounce_ms
            token = observation.token + 1
            timer = self.scheduler.call_later(delay, lambda: self._evaluate(entry_id, token))
            observation.schedule(height, self.scheduler.now() + delay, timer, token)

    def _evaluate(self, entry_id: str, token: int) -> None:
        with scheduler_lock(self.scheduler):
            observation = self._observations.get(entry_id)
            if observation is None or observation.state != DebounceState.PENDING or observation.token != token:
                return

            height = observation.pending_height
            observation.settle()
            try:
                if height is None:
                    height = observation.source.measure()
                new_count = self._estimate(height)
            except MeasurementError as e:
                self._report_error(entry_id, e)
                return

            self._commit(observation, new_count)

    def _commit(self, observation: EntryObservation, new_count: int) -> None:
        if new_count == observation.last_reported:
            return
        try:
            self.store.update_page_count(observation.entry_id, new_count)
        except NotFoundError:
            bunindex_logger.warning(f"[PBE]Entry {observation.entry_id} left the store while observed; dropping its page count")
            observation.cancel()
            self._observations.pop(observation.entry_id, None)
            return
        bunindex_logger.info(f"[PBE]Page count of {observation.entry_id} changed {observation.last_reported} -> {new_count}")
        observation.last_reported = new_count

    def _report_error(self, entry_id: str, error: MeasurementError) -> None:
        bunindex_logger.warning(f"[PBE]Measurement for {entry_id} rejected, keeping previous page count: {error}")
        if self.on_error:
            self.on_error(entry_id, error)

    def flush(self, entry_id: str | None = None) -> None:
        """Evaluate pending measurements now instead of waiting for the window to close."""
        with scheduler_lock(self.scheduler):
            ids = [entry_id] if entry_id else list(self._observations)
            for observed_id in ids:
                observation = self._observations.get(observed_id)
                if observation and observation.state == DebounceState.PENDING:
                    if observation.timer is not None:
                        observation.timer.cancel()
                    self._evaluate(observed_id, observation.token)

    def unobserve(self, entry_id: str) -> None:
        with scheduler_lock(self.scheduler):
            observation = self._observations.pop(entry_id, None)
            if observation is not None:
                observation.cancel()
                bunindex_logger.debug(f"[PBE]..Stopped observing {entry_id}")

    def dispose(self) -> None:
        with scheduler_lock(self.scheduler):
            for entry_id in list(self._observations):
                self.unobserve(entry_id)
