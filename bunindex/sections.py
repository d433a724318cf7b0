import logging
import math
from collections.abc import Sequence
from itertools import count
from typing import NamedTuple

from bunindex.entry import IndexEntry, RowType

bunindex_logger = logging.getLogger("bunindex")

SECTION_BREAK_PREFIX = "SECTION_BREAK"


class SectionGroup(NamedTuple):
    label: str | None
    section_break: IndexEntry | None
    entries: list[IndexEntry]
    page_start: int | None
    page_end: int | None

    @property
    def is_root(self) -> bool:
        return self.section_break is None

    @property
    def members(self) -> list[IndexEntry]:
        """Entries of the section other than the break that opens it."""
        return [e for e in self.entries if e is not self.section_break]


class TocRow(NamedTuple):
    tab: str
    title: str
    date: str = ""
    page: int | None = None

    @property
    def is_section(self) -> bool:
        return self.tab.startswith(SECTION_BREAK_PREFIX)


def _close_group(label, section_break, members) -> SectionGroup:
    page_start = members[0].page_start if members else None
    page_end = members[-1].page_end if members else None
    return SectionGroup(label, section_break, members, page_start, page_end)


def group_by_sections(ranged_entries: Sequence[IndexEntry]) -> list[SectionGroup]:
    """Split a ranged sequence into sections, one linear pass.

    Each section-break opens a group and is its first member; the group runs
    until the next break. Entries before the first break form an unlabelled
    root group, which is only emitted if there are such entries.
    """
    groups: list[SectionGroup] = []
    label: str | None = None
    section_break: IndexEntry | None = None
    members: list[IndexEntry] = []

    for entry in ranged_entries:
        if entry.row_type == RowType.SECTION_BREAK:
            if members:
                groups.append(_close_group(label, section_break, members))
            label, section_break, members = entry.section_label or "", entry, [entry]
        else:
            members.append(entry)

    if members:
        groups.append(_close_group(label, section_break, members))

    bunindex_logger.debug(f"[SEC]..Grouped {len(ranged_entries)} entries into {len(groups)} sections")
    return groups


def section_for_page(groups: Sequence[SectionGroup], page: int) -> SectionGroup | None:
    """The section whose page range holds a global page number, for sticky headers."""
    for group in groups:
        if group.page_start is not None and group.page_start <= page <= group.page_end:
            return group
    return None


def build_toc_preview(ranged_entries: Sequence[IndexEntry]) -> list[TocRow]:
    """Table-of-contents rows for a ranged sequence.

    Every non-break entry gets the next tab number ('001.', '002.', ...) and
    its starting page; section breaks become SECTION_BREAK_<n> rows carrying
    their label so the index can print them as headings.
    """
    tab_counts = count(1)
    section_counts = count(1)
    rows = []
    for entry in ranged_entries:
        if entry.row_type == RowType.SECTION_BREAK:
            rows.append(TocRow(f"{SECTION_BREAK_PREFIX}_{next(section_counts)}", entry.section_label or ""))
            continue
        rows.append(TocRow(f"{next(tab_counts):03}.", entry.title, entry.date, entry.page_start))
    return rows


def estimate_toc_pages(row_count: int, rows_per_page: int = 25) -> int:
    """How many pages a printed index of row_count rows needs; never less than one."""
    if rows_per_page < 1:
        rows_per_page = 1
    return max(1, math.ceil(row_count / rows_per_page))
