from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from docx import Document
from docx.document import Document as DocumentObject
from docx.enum.text import WD_PARAGRAPH_ALIGNMENT
from docx.shared import Pt, RGBColor

from bunindex.headers import HEADERS
from bunindex.sections import TocRow


@dataclass
class DocxConfig:
    """Configuration for the .docx index preview."""

    confidential: bool = False
    show_dates: bool = True
    index_font: str | None = None


FONT_NAMES = {"sans": "Arial", "serif": "Times New Roman", "mono": "Courier New"}


def _setup_document_style(doc: DocumentObject, index_font):
    style = doc.styles["Normal"]
    style.font.name = FONT_NAMES.get(index_font or "", "Times New Roman")


def _add_docx_header(doc: DocumentObject, case_details: dict[str, str], confidential: bool):
    claim_no = case_details.get("claim_no", "")
    case_name = case_details.get("case_name", "")
    bundle_name = case_details.get("bundle_title", "").upper()

    if claim_no:
        para = doc.add_paragraph(claim_no)
        para.alignment = WD_PARAGRAPH_ALIGNMENT.RIGHT

    if case_name:
        para = doc.add_paragraph(case_name)
        para.alignment = WD_PARAGRAPH_ALIGNMENT.CENTER
        run = para.runs[0]
        run.bold = True
        run.font.size = Pt(14)

    if bundle_name:
        para = doc.add_paragraph()
        para.alignment = WD_PARAGRAPH_ALIGNMENT.CENTER
        run = para.add_run(bundle_name)
        run.bold = True
        run.font.size = Pt(16)
        if confidential:
            run.font.color.rgb = RGBColor(255, 0, 0)
            run.text = f"CONFIDENTIAL\n{bundle_name}"


def _create_and_populate_table(doc: DocumentObject, toc_rows: Sequence[TocRow], show_dates: bool):
    table = doc.add_table(rows=1, cols=4)
    table.style = "Table Grid"

    header_cells = table.rows[0].cells
    header_cells[0].text = HEADERS[0]
    header_cells[1].text = HEADERS[1]
    header_cells[2].text = HEADERS[2] if show_dates else ""
    header_cells[3].text = HEADERS[3]
    for cell in header_cells:
        for run in cell.paragraphs[0].runs:
            run.bold = True
            run.font.size = Pt(10)

    for row in toc_rows:
        cells = table.add_row().cells
        if row.is_section:
            # a section heading spans the whole row
            cells[0].merge(cells[-1])
            para = cells[0].paragraphs[0]
            run = para.add_run(row.title)
            run.bold = True
            run.font.size = Pt(12)
            para.alignment = WD_PARAGRAPH_ALIGNMENT.CENTER
        else:
            cells[0].text = row.tab
            cells[1].text = row.title
            cells[2].text = row.date if show_dates else ""
            cells[3].text = "" if row.page is None else str(row.page)
    return table


def create_toc_docx(toc_rows: Sequence[TocRow], case_details: dict[str, str], output_file_path: Path | str, config: DocxConfig | None = None) -> Path:
    """Write the index preview to a .docx file and return its path."""
    config = config or DocxConfig()
    doc = Document()

    _setup_document_style(doc, config.index_font)
    _add_docx_header(doc, case_details, config.confidential)
    _create_and_populate_table(doc, toc_rows, config.show_dates)

    output_file_path = Path(output_file_path)
    doc.save(str(output_file_path))
    return output_file_path
