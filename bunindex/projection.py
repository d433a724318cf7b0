import logging
from collections.abc import Callable

from bunindex.entry_store import EntryStore, StoreChange
from bunindex.page_ranges import PageRanges
from bunindex.sections import SectionGroup, TocRow, build_toc_preview, group_by_sections

bunindex_logger = logging.getLogger("bunindex")


class CaseView:
    """Everything derived from one case's sequence at a single point in time."""

    def __init__(self, ranges: PageRanges):
        self.ranges = ranges
        self._sections: list[SectionGroup] | None = None
        self._toc: list[TocRow] | None = None

    @property
    def entries(self):
        return self.ranges.entries

    @property
    def total_pages(self) -> int:
        return self.ranges.total_pages

    @property
    def sections(self) -> list[SectionGroup]:
        if self._sections is None:
            self._sections = group_by_sections(self.ranges.entries)
        return self._sections

    @property
    def toc(self) -> list[TocRow]:
        if self._toc is None:
            self._toc = build_toc_preview(self.ranges.entries)
        return self._toc


class BundleIndexView:
    """Read side of the engine: ranged entries and sections kept in step with an EntryStore.

    A case's view is dropped as soon as the store announces a change to it
    and rebuilt from the full current sequence on the next read, so readers
    never see ranges from before the last write.
    """

    def __init__(self, store: EntryStore, first_page: int = 1):
        self.store = store
        self.first_page = first_page
        self._views: dict[str, CaseView] = {}
        self._listeners: list[Callable[[str, CaseView], None]] = []
        self._unsubscribe = store.subscribe(self._on_store_change)

    def _on_store_change(self, change: StoreChange) -> None:
        self._views.pop(change.case_id, None)
        if self._listeners:
            view = self.view(change.case_id)
            for listener in list(self._listeners):
                listener(change.case_id, view)

    def view(self, case_id: str) -> CaseView:
        view = self._views.get(case_id)
        if view is None:
            view = CaseView(self.store.page_ranges(case_id, first_page=self.first_page))
            self._views[case_id] = view
            bunindex_logger.debug(f"[VIEW]..Recomputed case {case_id}: {len(view.entries)} entries, {view.total_pages} pages")
        return view

    def is_stale(self, case_id: str) -> bool:
        return case_id not in self._views

    def on_recompute(self, listener: Callable[[str, CaseView], None]) -> None:
        """Register a consumer (a renderer, a window controller) to be handed each fresh view."""
        self._listeners.append(listener)

    def close(self) -> None:
        self._unsubscribe()
        self._views.clear()
        self._listeners.clear()
