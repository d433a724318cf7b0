"""Global page numbering for a bundle.

Every entry of the bundle occupies a contiguous run of pages. The numbering is
never stored: it is re-derived from sequence_order and page_count each time it
is read, so reordering and recomputing is the only way a range can change.
"""

import bisect
import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace
from typing import NamedTuple

from bunindex.entry import IndexEntry
from bunindex.errors import ValidationError

bunindex_logger = logging.getLogger("bunindex")

LONG_ENTRY_WARNING_PAGES = 100

PAGE_STAMP_STYLES = ("x", "x_of_y", "page_x", "page_x_of_y", "x_slash_y")


class PageRanges(NamedTuple):
    entries: list[IndexEntry]
    total_pages: int


class RangeIssue(NamedTuple):
    kind: str
    message: str
    entry_id: str | None = None
    expected: int | None = None
    actual: int | None = None


class RangeValidation(NamedTuple):
    is_valid: bool
    issues: list[RangeIssue]
    warnings: list[str]


def sort_by_sequence(entries: Iterable[IndexEntry]) -> list[IndexEntry]:
    """Order entries by sequence_order, refusing duplicate or missing positions."""
    ordered = sorted(entries, key=lambda e: (e.sequence_order is None, e.sequence_order))
    seen: set[int] = set()
    for entry in ordered:
        if entry.sequence_order is None:
            raise ValidationError(f"Entry {entry.id} has no sequence order", field="sequence_order")
        if entry.sequence_order in seen:
            raise ValidationError(f"Duplicate sequence order {entry.sequence_order} (entry {entry.id})", field="sequence_order")
        seen.add(entry.sequence_order)
    return ordered


def compute_page_ranges(entries: Iterable[IndexEntry], first_page: int = 1) -> PageRanges:
    """Assign page_start/page_end to every entry and return the bundle total.

    The input is not mutated: annotated copies are returned in sequence order.
    first_page lets front matter (such as a printed index) push the numbering
    along; with the default the first entry always starts on page 1.
    """
    if first_page < 1:
        raise ValidationError(f"First page must be at least 1, got {first_page}", field="first_page")

    cursor = first_page
    ranged = []
    for entry in sort_by_sequence(entries):
        if not isinstance(entry.page_count, int) or entry.page_count < 1:
            raise ValidationError(f"Entry {entry.id} has invalid page count {entry.page_count!r}", field="page_count")
        page_end = cursor + entry.page_count - 1
        ranged.append(replace(entry, page_start=cursor, page_end=page_end))
        cursor = page_end + 1

    total_pages = ranged[-1].page_end if ranged else 0
    return PageRanges(ranged, total_pages)


def entry_at_page(ranged_entries: Sequence[IndexEntry], page: int) -> IndexEntry | None:
    """Find the entry that owns a global page number."""
    if not ranged_entries:
        return None
    starts = [e.page_start for e in ranged_entries]
    idx = bisect.bisect_right(starts, page) - 1
    if idx < 0:
        return None
    candidate = ranged_entries[idx]
    if candidate.page_end is not None and page <= candidate.page_end:
        return candidate
    return None


def validate_page_ranges(ranged_entries: Sequence[IndexEntry], expected_total: int | None = None) -> RangeValidation:
    """Check a ranged sequence for gaps, overlaps and inconsistent counts.

    This is used on ranges that came back from elsewhere (a compiled bundle,
    a persisted index) rather than on fresh compute_page_ranges output,
    which is correct by construction.
    """
    issues: list[RangeIssue] = []
    warnings: list[str] = []

    expected_start = (ranged_entries[0].page_start if ranged_entries else None) or 1
    for entry in ranged_entries:
        if entry.page_start is None or entry.page_end is None:
            issues.append(RangeIssue("missing_range", f"Entry {entry.id} has no page range", entry.id))
            continue

        if entry.page_start > expected_start:
            issues.append(
                RangeIssue("gap", f"Pagination gap: expected page {expected_start}, found page {entry.page_start}", entry.id, expected_start, entry.page_start)
            )
        elif entry.page_start < expected_start:
            issues.append(
                RangeIssue("overlap", f"Pages overlap: expected page {expected_start}, found page {entry.page_start}", entry.id, expected_start, entry.page_start)
            )

        calculated_end = entry.page_start + entry.page_count - 1
        if calculated_end != entry.page_end:
            issues.append(
                RangeIssue(
                    "page_count_mismatch",
                    f"{entry.title or entry.id}: {entry.page_count} pages should end at {calculated_end}, but marked as {entry.page_end}",
                    entry.id,
                    calculated_end,
                    entry.page_end,
                )
            )

        if entry.page_count > LONG_ENTRY_WARNING_PAGES:
            warnings.append(f"{entry.title or entry.id} has {entry.page_count} pages - consider splitting for easier navigation")

        expected_start = entry.page_end + 1

    if expected_total is not None:
        actual_total = ranged_entries[-1].page_end if ranged_entries else 0
        if actual_total != expected_total:
            issues.append(
                RangeIssue("total_page_mismatch", f"Index indicates {actual_total} total pages, but {expected_total} were expected", None, expected_total, actual_total)
            )

    for issue in issues:
        bunindex_logger.debug(f"[VPR]..{issue.kind}: {issue.message}")

    return RangeValidation(not issues, issues, warnings)


def format_page_stamp(page: int, total_pages: int, style: str = "page_x_of_y", prefix: str = "") -> str:
    """Text printed on a bundle page, e.g. 'Page 4 of 120'."""
    style_formats = {
        "x": str(page),
        "x_of_y": f"{page} of {total_pages}",
        "page_x": f"Page {page}",
        "page_x_of_y": f"Page {page} of {total_pages}",
        "x_slash_y": f"{page} / {total_pages}",
    }
    if style not in PAGE_STAMP_STYLES:
        bunindex_logger.warning(f"[FPS]..Unknown page number style {style}, defaulting to page_x")
    stamp = style_formats.get(style, f"Page {page}")
    return f"{prefix.strip()} {stamp}" if prefix else stamp
