"""Index previews written as .docx (python-docx) and PDF (reportlab)."""

import pytest
from docx import Document
from pikepdf import Pdf

from bunindex.makedocxindex import DocxConfig, create_toc_docx
from bunindex.sections import TocRow
from bunindex.toc_pdf import create_toc_pdf

CASE_DETAILS = {"bundle_title": "Trial Bundle", "case_name": "Smith v Jones", "claim_no": "KB-2024-000123"}


@pytest.fixture
def toc_rows():
    return [
        TocRow("SECTION_BREAK_1", "Pleadings"),
        TocRow("001.", "Claim Form", "31 Jan 2024", 2),
        TocRow("002.", "Defence", "", 4),
        TocRow("SECTION_BREAK_2", "Evidence"),
        TocRow("003.", "Witness Statement", "1 Mar 2024", 6),
    ]


class TestDocxIndex:
    def test_table_rows(self, tmp_path, toc_rows):
        path = create_toc_docx(toc_rows, CASE_DETAILS, tmp_path / "index.docx")

        doc = Document(str(path))
        table = doc.tables[0]
        assert [c.text for c in table.rows[0].cells] == ["Tab", "Title", "Date", "Page"]
        assert [c.text for c in table.rows[2].cells] == ["001.", "Claim Form", "31 Jan 2024", "2"]
        assert table.rows[1].cells[0].text == "Pleadings"
        assert len(table.rows) == 6

    def test_header_paragraphs(self, tmp_path, toc_rows):
        path = create_toc_docx(toc_rows, CASE_DETAILS, tmp_path / "index.docx", DocxConfig(confidential=True))

        text = "\n".join(p.text for p in Document(str(path)).paragraphs)
        assert "KB-2024-000123" in text
        assert "Smith v Jones" in text
        assert "CONFIDENTIAL" in text
        assert "TRIAL BUNDLE" in text

    def test_hidden_dates(self, tmp_path, toc_rows):
        path = create_toc_docx(toc_rows, CASE_DETAILS, tmp_path / "index.docx", DocxConfig(show_dates=False))

        table = Document(str(path)).tables[0]
        assert table.rows[0].cells[2].text == ""
        assert table.rows[2].cells[2].text == ""


class TestPdfIndex:
    def test_renders_a_pdf(self, toc_rows):
        buffer, pages = create_toc_pdf(toc_rows, CASE_DETAILS)

        assert buffer.getvalue().startswith(b"%PDF")
        with Pdf.open(buffer) as pdf:
            assert len(pdf.pages) == pages == 1

    def test_long_index_reports_every_page(self):
        rows = [TocRow(f"{n:03}.", f"Exhibit {n}", "", n) for n in range(1, 200)]

        buffer, pages = create_toc_pdf(rows, CASE_DETAILS, show_dates=False, index_font="mono")

        assert pages > 1
        with Pdf.open(buffer) as pdf:
            assert len(pdf.pages) == pages
