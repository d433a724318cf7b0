import pytest

from bunindex.entry import RowType
from bunindex.index_csv import IndexRow, load_index_rows, parse_the_date, read_index_rows, rows_to_entries
from bunindex.page_ranges import compute_page_ranges

INDEX_CSV = """filename,title,date,section
,Pleadings,,1
claim.pdf,Claim Form,2024-01-31,0
defence.pdf,Defence,2024-02-28,
,Evidence,,1
witness.pdf,Witness Statement of J Smith,,0
"""


@pytest.mark.parametrize(
    "setting, expected",
    [
        ("YYYY-MM-DD", "2024-01-31"),
        ("DD-MM-YYYY", "31/01/2024"),
        ("uk_longdate", "31 January 2024"),
        ("us_abbreviated_date", "Jan 31, 2024"),
        ("hide_date", ""),
    ],
)
def test_parse_the_date(setting, expected):
    assert parse_the_date("2024-01-31", setting) == expected


def test_parse_the_date_leaves_other_text_alone():
    assert parse_the_date("Undated", "uk_longdate") == "Undated"
    assert parse_the_date("2024-02-31", "uk_longdate") == "2024-02-31"
    assert parse_the_date("2024-01-31", "klingon") == "2024-01-31"


def test_read_index_rows():
    rows = read_index_rows(INDEX_CSV)

    assert rows[0] == IndexRow("", "Pleadings", "", True)
    assert rows[1] == IndexRow("claim.pdf", "Claim Form", "2024-01-31", False)
    assert rows[2].is_section is False
    assert [r.is_section for r in rows] == [True, False, False, True, False]


def test_short_rows_are_padded():
    rows = read_index_rows("filename,title\na.pdf,Letter\nb.pdf\n\n")

    assert rows == [IndexRow("a.pdf", "Letter", "", False), IndexRow("b.pdf", "b", "", False)]


def test_load_index_rows(tmp_path):
    path = tmp_path / "index.csv"
    path.write_text(INDEX_CSV, encoding="utf-8")

    rows = load_index_rows(path, "uk_abbreviated_date")

    assert rows[1].date == "31 Jan 2024"


def test_rows_to_entries_skips_files_without_pages():
    rows = read_index_rows(INDEX_CSV)

    entries = rows_to_entries("c1", rows, {"claim.pdf": 3, "witness.pdf": 2})

    assert [e.row_type for e in entries] == [RowType.SECTION_BREAK, RowType.EVIDENCE_FILE, RowType.SECTION_BREAK, RowType.EVIDENCE_FILE]
    assert [e.sequence_order for e in entries] == [0, 1, 2, 3]
    assert entries[1].description == "Claim Form"

    ranges = compute_page_ranges(entries)
    assert [(e.page_start, e.page_end) for e in ranges.entries] == [(1, 1), (2, 4), (5, 5), (6, 7)]
