"""The canonical ordered collection of bundle entries.

Entries live in an arena keyed by id; their order inside a case is given only
by sequence_order. Every committed mutation is announced to subscribers as a
StoreChange so derived views (page ranges, sections, the rendered window) can
be recomputed from the fresh sequence.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import NamedTuple

from bunindex.entry import IndexEntry, RowType, is_editable
from bunindex.errors import NotFoundError, ValidationError
from bunindex.page_ranges import PageRanges, compute_page_ranges, sort_by_sequence

bunindex_logger = logging.getLogger("bunindex")

SEQUENCE_STEP = 1000


class StoreChange(NamedTuple):
    case_id: str
    kind: str  # insert, remove, reorder, page_count, content, load
    entry_ids: tuple[str, ...]


Listener = Callable[[StoreChange], None]


def _check_page_count(page_count, entry_id: str | None = None):
    if isinstance(page_count, bool) or not isinstance(page_count, int) or page_count < 1:
        where = f" for entry {entry_id}" if entry_id else ""
        raise ValidationError(f"Page count must be a positive integer{where}, got {page_count!r}", field="page_count")


class EntryStore:
    def __init__(self, entries: Iterable[IndexEntry] | None = None):
        self._entries: dict[str, IndexEntry] = {}
        self._listeners: list[Listener] = []
        if entries:
            self.load(entries)

    # -- reads -------------------------------------------------------------

    def cases(self) -> list[str]:
        return sorted({e.case_id for e in self._entries.values()})

    def _ordered(self, case_id: str) -> list[IndexEntry]:
        return sort_by_sequence(e for e in self._entries.values() if e.case_id == case_id)

    def list(self, case_id: str) -> list[IndexEntry]:
        """Entries of a case in sequence order. Returns copies; the store is only changed through its methods."""
        return [replace(e) for e in self._ordered(case_id)]

    def get(self, entry_id: str) -> IndexEntry:
        return replace(self._require(entry_id))

    def __contains__(self, entry_id: str) -> bool:
        return entry_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def page_ranges(self, case_id: str, first_page: int = 1) -> PageRanges:
        return compute_page_ranges(self._ordered(case_id), first_page=first_page)

    def _require(self, entry_id: str) -> IndexEntry:
        try:
            return self._entries[entry_id]
        except KeyError:
            raise NotFoundError(entry_id) from None

    # -- writes ------------------------------------------------------------

    def load(self, entries: Iterable[IndexEntry]) -> None:
        """Replace the contents of the store with records from the persistence layer."""
        incoming: dict[str, IndexEntry] = {}
        for entry in entries:
            if entry.id in incoming:
                raise ValidationError(f"Duplicate entry id {entry.id}", field="id")
            _check_page_count(entry.page_count, entry.id)
            incoming[entry.id] = entry.without_ranges()

        for case_id in {e.case_id for e in incoming.values()}:
            # raises on duplicate or missing sequence orders
            sort_by_sequence(e for e in incoming.values() if e.case_id == case_id)

        self._entries = incoming
        bunindex_logger.debug(f"[STORE]..Loaded {len(incoming)} entries")
        for case_id in sorted({e.case_id for e in incoming.values()}):
            self._emit(StoreChange(case_id, "load", tuple(e.id for e in self._ordered(case_id))))

    def insert(self, entry: IndexEntry, at_position: int | None = None) -> IndexEntry:
        """Add an entry to its case, at the end or before the entry currently at list index at_position."""
        if entry.id in self._entries:
            raise ValidationError(f"Entry {entry.id} already exists", field="id")
        _check_page_count(entry.page_count, entry.id)

        new_entry = entry.without_ranges()
        ordered = self._ordered(new_entry.case_id)

        if at_position is None and new_entry.sequence_order is not None:
            if any(e.sequence_order == new_entry.sequence_order for e in ordered):
                raise ValidationError(f"Duplicate sequence order {new_entry.sequence_order} in case {new_entry.case_id}", field="sequence_order")
        elif at_position is None or at_position >= len(ordered):
            new_entry.sequence_order = ordered[-1].sequence_order + 1 if ordered else 0
        else:
            if at_position < 0:
                raise ValidationError(f"Insertion position must not be negative, got {at_position}", field="at_position")
            new_entry.sequence_order = self._slot_before(ordered, at_position)

        self._entries[new_entry.id] = new_entry
        bunindex_logger.debug(f"[STORE]..Inserted {new_entry.row_type.value} {new_entry.id} at order {new_entry.sequence_order}")
        self._emit(StoreChange(new_entry.case_id, "insert", (new_entry.id,)))
        return replace(new_entry)

    def _slot_before(self, ordered: list[IndexEntry], position: int) -> int:
        upper = ordered[position].sequence_order
        lower = ordered[position - 1].sequence_order if position > 0 else upper - SEQUENCE_STEP
        if upper - lower > 1:
            return (lower + upper) // 2

        # No gap left at this spot: spread the case out again, keeping its order.
        for idx, existing in enumerate(ordered):
            slot = idx if idx < position else idx + 1
            existing.sequence_order = (slot + 1) * SEQUENCE_STEP
        bunindex_logger.debug(f"[STORE]..Re-spaced sequence orders of {len(ordered)} entries")
        return (position + 1) * SEQUENCE_STEP

    def remove(self, entry_id: str) -> None:
        entry = self._require(entry_id)
        del self._entries[entry_id]
        bunindex_logger.debug(f"[STORE]..Removed {entry_id}")
        self._emit(StoreChange(entry.case_id, "remove", (entry_id,)))

    def reorder(self, case_id: str, ordered_ids: list[str]) -> list[IndexEntry]:
        """Apply a full permutation of the case's entries.

        Partial reorders are rejected: silently merging them would drop or
        misplace the entries the caller did not mention.
        """
        ordered = self._ordered(case_id)
        current_ids = [e.id for e in ordered]

        if len(set(ordered_ids)) != len(ordered_ids):
            raise ValidationError(f"Reorder for case {case_id} repeats entry ids", field="ordered_ids")
        if set(ordered_ids) != set(current_ids):
            missing = set(current_ids) - set(ordered_ids)
            unknown = set(ordered_ids) - set(current_ids)
            raise ValidationError(
                f"Reorder for case {case_id} is not a permutation of its entries (missing: {sorted(missing)}, unknown: {sorted(unknown)})",
                field="ordered_ids",
            )

        # existing order keys handed out again in the new order
        order_keys = [e.sequence_order for e in ordered]
        for entry_id, order_key in zip(ordered_ids, order_keys):
            self._entries[entry_id].sequence_order = order_key

        bunindex_logger.info(f"[STORE]Reordered {len(ordered_ids)} entries in case {case_id}")
        self._emit(StoreChange(case_id, "reorder", tuple(ordered_ids)))
        return self.list(case_id)

    def update_page_count(self, entry_id: str, new_count: int) -> IndexEntry:
        _check_page_count(new_count, entry_id)
        entry = self._require(entry_id)
        if entry.row_type == RowType.SECTION_BREAK and new_count != 1:
            raise ValidationError(f"Section break {entry_id} always occupies exactly one page", field="page_count")
        if entry.page_count == new_count:
            return replace(entry)

        bunindex_logger.debug(f"[STORE]..Page count of {entry_id}: {entry.page_count} -> {new_count}")
        entry.page_count = new_count
        self._emit(StoreChange(entry.case_id, "page_count", (entry_id,)))
        return replace(entry)

    def update_content(self, entry_id: str, content: str | None) -> IndexEntry:
        entry = self._require(entry_id)
        if not is_editable(entry):
            raise ValidationError(f"Entry {entry_id} of type {entry.row_type.value} has no editable content", field="content")
        entry.content = content
        self._emit(StoreChange(entry.case_id, "content", (entry_id,)))
        return replace(entry)

    # -- notifications -----------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                # mutation is already committed, keep notifying the others
                bunindex_logger.exception(f"[STORE]Listener failed while handling {change.kind} for case {change.case_id}")
