"""Printable index preview rendered with ReportLab.

The number of pages the printed index takes is returned alongside the PDF so
callers can start the bundle's own numbering after it.
"""

import io
import logging
from collections.abc import Sequence

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, StyleSheet1, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Flowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from bunindex.headers import HEADERS
from bunindex.sections import TocRow

bunindex_logger = logging.getLogger("bunindex")

TOC_FONTS = {
    "serif": ("Times-Roman", "Times-Bold", 12),
    "sans": ("Helvetica", "Helvetica-Bold", 12),
    "mono": ("Courier", "Courier-Bold", 10),
}


def _setup_reportlab_styles(index_font: str | None) -> StyleSheet1:
    main_font, bold_font, base_font_size = TOC_FONTS.get(index_font or "", TOC_FONTS["sans"])
    style_sheet = getSampleStyleSheet()
    normal = style_sheet["Normal"]
    styles = [
        ParagraphStyle("header_style", parent=normal, fontName=bold_font, fontSize=base_font_size, leading=14, alignment=TA_CENTER),
        ParagraphStyle("main_style", parent=normal, fontName=main_font, fontSize=base_font_size, leading=14),
        ParagraphStyle("main_style_right", parent=normal, fontName=main_font, fontSize=base_font_size, leading=14, alignment=TA_RIGHT),
        ParagraphStyle("bold_style", parent=normal, fontName=bold_font, fontSize=base_font_size, leading=14),
        ParagraphStyle("claimno_style", parent=normal, fontName=bold_font, fontSize=base_font_size, leading=14, alignment=TA_RIGHT),
        ParagraphStyle("case_name_style", parent=normal, fontName=bold_font, fontSize=base_font_size + 2, leading=16, alignment=TA_CENTER),
        ParagraphStyle("bundle_title_style", parent=normal, fontName=bold_font, fontSize=base_font_size + 6, leading=20, alignment=TA_CENTER),
    ]
    for style in styles:
        style_sheet.add(style)
    return style_sheet


def _build_header(case_details: dict[str, str], style_sheet: StyleSheet1, confidential: bool) -> list[Flowable]:
    title = case_details.get("bundle_title", "")
    if confidential:
        title = f'<font color="red">CONFIDENTIAL</font> {title}'
    return [
        Paragraph(case_details.get("claim_no", ""), style_sheet["claimno_style"]),
        Spacer(1, 0.5 * cm),
        Paragraph(case_details.get("case_name", ""), style_sheet["case_name_style"]),
        Spacer(1, 0.3 * cm),
        Paragraph(title, style_sheet["bundle_title_style"]),
    ]


def _build_table(toc_rows: Sequence[TocRow], style_sheet: StyleSheet1, show_dates: bool) -> Table:
    # hidden date column has zero width: plain strings only
    header = [Paragraph(h, style_sheet["header_style"]) if (h != HEADERS[2] or show_dates) else "" for h in HEADERS]
    data = [header]
    section_rows = []
    for row in toc_rows:
        if row.is_section:
            section_rows.append(len(data))
            data.append(["", Paragraph(row.title, style_sheet["bold_style"]), "", ""])
            continue
        data.append(
            [
                Paragraph(row.tab, style_sheet["main_style"]),
                Paragraph(row.title, style_sheet["main_style"]),
                Paragraph(row.date, style_sheet["main_style"]) if show_dates else "",
                Paragraph("" if row.page is None else str(row.page), style_sheet["main_style_right"]),
            ]
        )

    date_width = 3.2 if show_dates else 0
    col_widths = [1.5 * cm, (12.3 - date_width) * cm, date_width * cm, 2 * cm]
    table = Table(data, colWidths=col_widths, repeatRows=1)
    style = TableStyle(
        [
            ("BACKGROUND", (0, 0), (-1, 0), colors.darkgray),
            ("LINEBELOW", (0, 0), (-1, 0), 1, colors.black),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("LINEBELOW", (0, 1), (-1, -1), 0.3, colors.black),
        ]
    )
    for section_row in section_rows:
        style.add("BACKGROUND", (0, section_row), (-1, section_row), colors.lightgrey)
    table.setStyle(style)
    return table


def create_toc_pdf(toc_rows: Sequence[TocRow], case_details: dict[str, str], show_dates: bool = True, confidential: bool = False, index_font: str | None = None) -> tuple[io.BytesIO, int]:
    """Render the index preview. Returns (pdf buffer, number of pages it took)."""
    style_sheet = _setup_reportlab_styles(index_font)
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, rightMargin=1.5 * cm, leftMargin=1.5 * cm, topMargin=1 * cm, bottomMargin=1.5 * cm)

    elements = _build_header(case_details, style_sheet, confidential) + [Spacer(1, 1 * cm), _build_table(toc_rows, style_sheet, show_dates)]
    doc.build(elements)

    buffer.seek(0)
    bunindex_logger.debug(f"[TOC]..Index preview of {len(toc_rows)} rows rendered on {doc.page} pages")
    return buffer, doc.page
