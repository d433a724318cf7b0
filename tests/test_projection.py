"""The read side stays in step with the store after every mutation."""

from bunindex.entry_store import EntryStore
from bunindex.page_ranges import validate_page_ranges
from bunindex.projection import BundleIndexView
from tests.fixtures.sample_entries import CASE, make_break, make_entry


def _ranges(view):
    return [(e.id, e.page_start, e.page_end) for e in view.entries]


def test_view_is_cached_until_the_case_changes(abc_store):
    index = BundleIndexView(abc_store)

    first = index.view(CASE)

    assert index.view(CASE) is first
    abc_store.update_page_count("B", 4)
    assert index.is_stale(CASE)
    assert _ranges(index.view(CASE)) == [("A", 1, 2), ("B", 3, 6), ("C", 7, 9)]


def test_changes_to_another_case_keep_the_view(abc_store):
    index = BundleIndexView(abc_store)
    first = index.view(CASE)

    abc_store.insert(make_entry("X", 1, case_id="other"))

    assert index.view(CASE) is first


def test_reorder_renumbers_the_case(abc_store):
    index = BundleIndexView(abc_store)
    index.view(CASE)

    abc_store.reorder(CASE, ["C", "A", "B"])

    view = index.view(CASE)
    assert _ranges(view) == [("C", 1, 3), ("A", 4, 5), ("B", 6, 6)]
    assert view.total_pages == 6


def test_views_stay_valid_across_a_run_of_mutations(abc_store):
    index = BundleIndexView(abc_store)

    abc_store.insert(make_break("S", "Exhibits"), at_position=1)
    abc_store.update_page_count("C", 7)
    abc_store.remove("A")
    abc_store.insert(make_entry("D", 2), at_position=0)
    abc_store.reorder(CASE, [e.id for e in reversed(abc_store.list(CASE))])

    view = index.view(CASE)
    assert validate_page_ranges(view.entries, expected_total=sum(e.page_count for e in abc_store.list(CASE))).is_valid
    assert view.entries[0].page_start == 1


def test_sections_and_toc_follow_the_sequence():
    store = EntryStore([make_break("SA", "Pleadings", 0), make_entry("e1", 2, 1), make_break("SB", "Evidence", 2), make_entry("e2", 3, 3)])
    index = BundleIndexView(store)

    view = index.view(CASE)
    assert [(g.label, g.page_start, g.page_end) for g in view.sections] == [("Pleadings", 1, 3), ("Evidence", 4, 7)]
    assert [r.page for r in view.toc if not r.is_section] == [2, 5]

    store.reorder(CASE, ["SB", "e2", "SA", "e1"])

    view = index.view(CASE)
    assert [(g.label, g.page_start, g.page_end) for g in view.sections] == [("Evidence", 1, 4), ("Pleadings", 5, 7)]


def test_first_page_offset():
    store = EntryStore([make_entry("A", 2, 0)])

    view = BundleIndexView(store, first_page=3).view(CASE)

    assert _ranges(view) == [("A", 3, 4)]
    assert view.total_pages == 4


def test_recompute_listeners_get_fresh_views(abc_store):
    index = BundleIndexView(abc_store)
    seen = []
    index.on_recompute(lambda case_id, view: seen.append((case_id, view.total_pages)))

    abc_store.update_page_count("A", 10)
    abc_store.remove("B")

    assert seen == [(CASE, 14), (CASE, 13)]


def test_close_stops_following_the_store(abc_store):
    index = BundleIndexView(abc_store)
    seen = []
    index.on_recompute(lambda case_id, view: seen.append(case_id))

    index.close()
    abc_store.remove("A")

    assert seen == []
