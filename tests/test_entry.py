import pytest

from bunindex.entry import IndexEntry, RowType, is_editable, new_component_reference, new_cover_page, new_divider, new_evidence_entry, new_section_break
from bunindex.errors import ValidationError


def test_builders_set_row_types():
    entries = [
        new_evidence_entry("c1", "claim.pdf", 3),
        new_section_break("c1", "Pleadings"),
        new_cover_page("c1"),
        new_divider("c1", "Exhibits"),
        new_component_reference("c1", "bundle-b", page_count=12, description="Bundle B"),
    ]

    assert [e.row_type for e in entries] == [RowType.EVIDENCE_FILE, RowType.SECTION_BREAK, RowType.COVER_PAGE, RowType.DIVIDER, RowType.COMPONENT_REFERENCE]
    assert [is_editable(e) for e in entries] == [False, False, True, True, False]
    assert len({e.id for e in entries}) == 5


def test_titles():
    assert new_section_break("c1", "Pleadings").title == "Pleadings"
    assert new_evidence_entry("c1", "claim.pdf", 3).title == "claim.pdf"
    assert new_evidence_entry("c1", "claim.pdf", 3, description="Claim Form").title == "Claim Form"


def test_record_keys_are_camel_case():
    entry = new_component_reference("c1", "bundle-b", page_count=12)
    entry.sequence_order = 4

    record = entry.to_dict()

    assert record["rowType"] == "component-reference"
    assert record["pageCount"] == 12
    assert record["sequenceOrder"] == 4
    assert "pageStart" not in record
    assert IndexEntry.from_dict(record) == entry


def test_from_dict_requires_row_type_and_case():
    with pytest.raises(ValidationError):
        IndexEntry.from_dict({"caseId": "c1"})
    with pytest.raises(ValidationError):
        IndexEntry.from_dict({"rowType": "divider"})
    with pytest.raises(ValidationError, match="Unknown row type"):
        IndexEntry.from_dict({"caseId": "c1", "rowType": "memo"})


def test_row_type_accepts_plain_string():
    entry = IndexEntry(case_id="c1", row_type="divider")

    assert entry.row_type is RowType.DIVIDER
