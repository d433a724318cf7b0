import csv
import io
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import NamedTuple

from bunindex.entry import IndexEntry, new_evidence_entry, new_section_break

bunindex_logger = logging.getLogger("bunindex")

MIN_CSV_COLUMNS_WITH_SECTION = 4
MIN_CSV_COLUMNS_NO_SECTION = 3

DATE_FORMATS = {
    "YYYY-MM-DD": "%Y-%m-%d",
    "DD-MM-YYYY": "%d/%m/%Y",
    "MM-DD-YYYY": "%m/%d/%Y",
    "uk_longdate": "%d %B %Y",
    "us_longdate": "%B %d, %Y",
    "uk_abbreviated_date": "%d %b %Y",
    "us_abbreviated_date": "%b %d, %Y",
}


class IndexRow(NamedTuple):
    filename: str
    title: str
    date: str
    is_section: bool


def parse_the_date(date: str, date_setting: str = "YYYY-MM-DD") -> str:
    """Reformat a YYYY-MM-DD date for display; anything else is passed through untouched."""
    if date_setting == "hide_date":
        return ""
    if not re.match(r"\d{4}-\d{2}-\d{2}", date):
        if date:
            bunindex_logger.debug(f"[PTD]..Date does not match expected format, leaving as is: {date}")
        return date
    try:
        parsed_date = datetime.strptime(date[:10], "%Y-%m-%d")
        return parsed_date.strftime(DATE_FORMATS[date_setting])
    except KeyError:
        bunindex_logger.error(f"[PTD]Unknown date setting: {date_setting}")
        return date
    except ValueError:
        bunindex_logger.error(f"[PTD]Not a real date: {date}")
        return date


def read_index_rows(csv_text: str, date_setting: str = "YYYY-MM-DD") -> list[IndexRow]:
    """Parse index CSV text.

    The first line is a header. Rows are
        filename, title, date, section
    where section is '1' for a section break (whose title is the section
    label) and '0' or blank for a file. The date and section columns may be
    left off entirely.
    """
    rows = []
    reader = csv.reader(io.StringIO(csv_text))
    next(reader, None)  # header row
    for row in reader:
        if not row or not any(cell.strip() for cell in row):
            continue
        if len(row) >= MIN_CSV_COLUMNS_WITH_SECTION:
            filename, title, raw_date, section = row[:4]
        elif len(row) >= MIN_CSV_COLUMNS_NO_SECTION:
            filename, title, raw_date = row[:3]
            section = ""
        elif len(row) == 2:
            filename, title = row
            raw_date, section = "", ""
        else:
            filename = row[0]
            title, raw_date, section = Path(filename).stem, "", ""
        rows.append(IndexRow(filename.strip(), title.strip(), parse_the_date(raw_date.strip(), date_setting), section.strip() == "1"))
    bunindex_logger.debug(f"[LID]..Loaded index data with {len(rows)} rows")
    return rows


def load_index_rows(csv_path: Path | str, date_setting: str = "YYYY-MM-DD") -> list[IndexRow]:
    bunindex_logger.debug(f"[LID]Loading index data from {csv_path}")
    return read_index_rows(Path(csv_path).read_text(encoding="utf-8"), date_setting)


def rows_to_entries(case_id: str, rows: list[IndexRow], page_counts: dict[str, int]) -> list[IndexEntry]:
    """Turn index rows into entries in row order; files without a known page count are skipped."""
    entries = []
    for row in rows:
        if row.is_section:
            entry = new_section_break(case_id, row.title)
        elif row.filename in page_counts:
            entry = new_evidence_entry(case_id, row.filename, page_counts[row.filename], description=row.title, date=row.date, file_path=row.filename)
        else:
            bunindex_logger.warning(f"File {row.filename} not found or failed to process. Skipping.")
            continue
        entry.sequence_order = len(entries)
        entries.append(entry)
    return entries
