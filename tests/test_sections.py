"""Tests for section grouping and the table-of-contents preview."""

import pytest

from bunindex.page_ranges import compute_page_ranges
from bunindex.sections import TocRow, build_toc_preview, estimate_toc_pages, group_by_sections, section_for_page
from tests.fixtures.sample_entries import make_break, make_entry


@pytest.fixture
def ranged():
    """[break "A", e1(2), e2(1), break "B", e3(3)]"""
    return compute_page_ranges(
        [
            make_break("SA", "A", 0),
            make_entry("e1", 2, 1),
            make_entry("e2", 1, 2),
            make_break("SB", "B", 3),
            make_entry("e3", 3, 4),
        ]
    ).entries


class TestGroupBySections:
    def test_breaks_open_groups(self, ranged):
        groups = group_by_sections(ranged)

        assert [(g.label, g.page_start, g.page_end) for g in groups] == [("A", 1, 4), ("B", 5, 8)]
        assert [[e.id for e in g.entries] for g in groups] == [["SA", "e1", "e2"], ["SB", "e3"]]

    def test_break_is_first_member_of_its_group(self, ranged):
        groups = group_by_sections(ranged)

        assert [g.section_break.id for g in groups] == ["SA", "SB"]
        assert [e.id for e in groups[0].members] == ["e1", "e2"]

    def test_entries_before_the_first_break_form_a_root_group(self):
        ranged = compute_page_ranges([make_entry("e0", 2, 0), make_break("SA", "A", 1), make_entry("e1", 1, 2)]).entries

        groups = group_by_sections(ranged)

        assert groups[0].is_root
        assert groups[0].label is None
        assert (groups[0].page_start, groups[0].page_end) == (1, 2)
        assert [g.label for g in groups] == [None, "A"]

    def test_no_root_group_when_sequence_starts_with_a_break(self, ranged):
        assert not any(g.is_root for g in group_by_sections(ranged))

    def test_no_breaks_means_one_root_group(self):
        ranged = compute_page_ranges([make_entry("e0", 2, 0), make_entry("e1", 1, 1)]).entries

        groups = group_by_sections(ranged)

        assert len(groups) == 1
        assert groups[0].is_root
        assert groups[0].page_end == 3

    def test_consecutive_breaks_give_a_break_only_group(self):
        ranged = compute_page_ranges([make_break("SA", "A", 0), make_break("SB", "B", 1), make_entry("e1", 2, 2)]).entries

        groups = group_by_sections(ranged)

        assert [(g.label, g.page_start, g.page_end) for g in groups] == [("A", 1, 1), ("B", 2, 4)]
        assert groups[0].members == []

    def test_documents_around_two_breaks(self):
        ranged = compute_page_ranges(
            [
                make_entry("Doc1", 1, 0),
                make_break("BA", "A", 1),
                make_entry("Doc2", 2, 2),
                make_entry("Doc3", 1, 3),
                make_break("BB", "B", 4),
                make_entry("Doc4", 3, 5),
            ]
        ).entries

        groups = group_by_sections(ranged)

        assert [(g.label, [e.id for e in g.entries]) for g in groups] == [
            (None, ["Doc1"]),
            ("A", ["BA", "Doc2", "Doc3"]),
            ("B", ["BB", "Doc4"]),
        ]
        assert [(g.page_start, g.page_end) for g in groups] == [(1, 1), (2, 5), (6, 9)]

    def test_empty_sequence(self):
        assert group_by_sections([]) == []

    def test_groups_cover_every_entry_once(self, ranged):
        grouped = [e.id for g in group_by_sections(ranged) for e in g.entries]

        assert grouped == [e.id for e in ranged]


def test_section_for_page(ranged):
    groups = group_by_sections(ranged)

    assert section_for_page(groups, 1).label == "A"
    assert section_for_page(groups, 4).label == "A"
    assert section_for_page(groups, 5).label == "B"
    assert section_for_page(groups, 9) is None


class TestTocPreview:
    def test_rows_number_entries_and_mark_breaks(self, ranged):
        rows = build_toc_preview(ranged)

        assert rows == [
            TocRow("SECTION_BREAK_1", "A"),
            TocRow("001.", "e1", "", 2),
            TocRow("002.", "e2", "", 4),
            TocRow("SECTION_BREAK_2", "B"),
            TocRow("003.", "e3", "", 6),
        ]
        assert [r.is_section for r in rows] == [True, False, False, True, False]

    def test_dates_are_carried(self):
        entry = make_entry("e1", 1, 0)
        entry.date = "2024-01-31"

        rows = build_toc_preview(compute_page_ranges([entry]).entries)

        assert rows[0].date == "2024-01-31"


@pytest.mark.parametrize("rows, pages", [(0, 1), (1, 1), (25, 1), (26, 2), (51, 3)])
def test_estimate_toc_pages(rows, pages):
    assert estimate_toc_pages(rows) == pages


def test_estimate_toc_pages_with_nonsense_rows_per_page():
    assert estimate_toc_pages(3, rows_per_page=0) == 3
