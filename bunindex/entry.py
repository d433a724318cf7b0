import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from bunindex.errors import ValidationError


class RowType(str, Enum):
    EVIDENCE_FILE = "evidence-file"
    COVER_PAGE = "cover-page"
    DIVIDER = "divider"
    SECTION_BREAK = "section-break"
    COMPONENT_REFERENCE = "component-reference"


EDITABLE_ROW_TYPES = frozenset({RowType.COVER_PAGE, RowType.DIVIDER})


def new_entry_id() -> str:
    return uuid.uuid4().hex


@dataclass
class IndexEntry:
    """One row of the bundle sequence.

    page_start and page_end are never stored truth: entries held by the
    EntryStore leave them as None and only the copies handed out by
    compute_page_ranges carry them.
    """

    case_id: str
    row_type: RowType
    id: str = field(default_factory=new_entry_id)
    sequence_order: int | None = None
    file_id: str | None = None
    content: str | None = None
    section_label: str | None = None
    page_count: int = 1
    description: str = ""
    date: str = ""
    disputed: bool = False
    exhibit_label: str | None = None
    file_path: str | None = None
    page_start: int | None = None
    page_end: int | None = None

    def __post_init__(self):
        self.row_type = RowType(self.row_type)
        if self.row_type == RowType.SECTION_BREAK:
            self.page_count = 1

    @property
    def title(self) -> str:
        if self.row_type == RowType.SECTION_BREAK:
            return self.section_label or ""
        return self.description or self.file_id or ""

    def without_ranges(self) -> "IndexEntry":
        return replace(self, page_start=None, page_end=None)

    def to_dict(self) -> dict[str, Any]:
        """Serialise with the camelCase keys used by the persistence layer."""
        data = {
            "id": self.id,
            "caseId": self.case_id,
            "sequenceOrder": self.sequence_order,
            "rowType": self.row_type.value,
            "fileId": self.file_id,
            "content": self.content,
            "sectionLabel": self.section_label,
            "pageCount": self.page_count,
            "description": self.description,
            "date": self.date,
            "disputed": self.disputed,
            "exhibitLabel": self.exhibit_label,
            "filePath": self.file_path,
        }
        if self.page_start is not None:
            data["pageStart"] = self.page_start
            data["pageEnd"] = self.page_end
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IndexEntry":
        try:
            row_type = RowType(data["rowType"])
            case_id = data["caseId"]
        except KeyError as e:
            raise ValidationError(f"Entry record is missing required field {e}", field=str(e)) from e
        except ValueError as e:
            raise ValidationError(f"Unknown row type: {data.get('rowType')!r}", field="rowType") from e

        kwargs = {
            "case_id": case_id,
            "row_type": row_type,
            "sequence_order": data.get("sequenceOrder"),
            "file_id": data.get("fileId"),
            "content": data.get("content"),
            "section_label": data.get("sectionLabel"),
            "page_count": data.get("pageCount", 1),
            "description": data.get("description") or "",
            "date": data.get("date") or "",
            "disputed": bool(data.get("disputed", False)),
            "exhibit_label": data.get("exhibitLabel"),
            "file_path": data.get("filePath"),
            "page_start": data.get("pageStart"),
            "page_end": data.get("pageEnd"),
        }
        if data.get("id"):
            kwargs["id"] = data["id"]
        return cls(**kwargs)


def is_editable(entry: IndexEntry) -> bool:
    return entry.row_type in EDITABLE_ROW_TYPES


def new_evidence_entry(case_id: str, file_id: str, page_count: int, description: str = "", date: str = "", file_path: str | None = None) -> IndexEntry:
    return IndexEntry(
        case_id=case_id,
        row_type=RowType.EVIDENCE_FILE,
        file_id=file_id,
        page_count=page_count,
        description=description,
        date=date,
        file_path=file_path,
    )


def new_section_break(case_id: str, section_label: str) -> IndexEntry:
    return IndexEntry(case_id=case_id, row_type=RowType.SECTION_BREAK, section_label=section_label)


def new_cover_page(case_id: str, content: str | None = None, description: str = "Cover Page") -> IndexEntry:
    return IndexEntry(case_id=case_id, row_type=RowType.COVER_PAGE, content=content, description=description)


def new_divider(case_id: str, title: str, content: str | None = None) -> IndexEntry:
    return IndexEntry(case_id=case_id, row_type=RowType.DIVIDER, content=content, description=title)


def new_component_reference(case_id: str, file_id: str, page_count: int = 1, description: str = "") -> IndexEntry:
    return IndexEntry(case_id=case_id, row_type=RowType.COMPONENT_REFERENCE, file_id=file_id, page_count=page_count, description=description)
