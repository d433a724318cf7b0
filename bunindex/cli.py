import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from werkzeug.utils import secure_filename

from bunindex.engine_config import EngineConfig, EngineConfigParams
from bunindex.entry_store import EntryStore
from bunindex.evidence import PdfEvidenceProvider, fetch_page_counts
from bunindex.index_csv import IndexRow, load_index_rows, rows_to_entries
from bunindex.logger import configure_logger
from bunindex.makedocxindex import DocxConfig, create_toc_docx
from bunindex.page_ranges import format_page_stamp
from bunindex.projection import BundleIndexView
from bunindex.sections import build_toc_preview, estimate_toc_pages
from bunindex.toc_pdf import create_toc_pdf
from bunindex.virtual_window import compute_virtual_window

bunindex_logger = logging.getLogger("bunindex")


def _parse_cli_args(argv=None):
    parser = argparse.ArgumentParser(description="Work out the page numbering and sections of a bundle of PDFs.")
    parser.add_argument("input_files", nargs="*", help="Input PDF files")
    parser.add_argument("-index", help="Optional CSV file with index data (filename, title, date, section)", default=None)
    parser.add_argument("-case", help="Case identifier", default="cli")
    parser.add_argument("-b", "--bundlename", help="Title of the bundle", default="Bundle")
    parser.add_argument("-c", "--casename", help="Name of case e.g. Smith v Jones & ors", default="")
    parser.add_argument("-n", "--claimno", help="Claim number", default="")
    parser.add_argument("-date_setting", help="Date display style, e.g. YYYY-MM-DD, uk_longdate, hide_date", default="YYYY-MM-DD")
    parser.add_argument("-page_num_style", help="Page stamp style: x, page_x, page_x_of_y, x_slash_y", default="")
    parser.add_argument("-after_index", help="Number the bundle after the printed index pages", action="store_true", default=False)
    parser.add_argument("-docx", help="Write the index preview to this .docx file", default=None)
    parser.add_argument("-pdf", help="Write the index preview to this PDF file", default=None)
    parser.add_argument("-confidential", help="Mark the index preview as confidential", action="store_true", default=False)
    parser.add_argument("-scroll", help="Show the virtual window of pages at this scroll offset", type=float, default=None)
    parser.add_argument("-viewport", help="Viewport height for -scroll", type=float, default=None)
    parser.add_argument("-log", help="Also write a session log file", action="store_true", default=False)
    return parser.parse_args(argv)


def _rows_from_inputs(args) -> list[IndexRow]:
    if args.index:
        return load_index_rows(args.index, args.date_setting)
    return [IndexRow(Path(f).name, Path(f).stem, "", False) for f in args.input_files]


def _resolve_files(rows: list[IndexRow], input_files: list[str], index_path: str | None) -> dict[str, str]:
    """Map each index filename to the path its pages are read from."""
    by_name = {Path(f).name: f for f in input_files}
    base = Path(index_path).parent if index_path else Path()
    resolved = {}
    for row in rows:
        if row.is_section:
            continue
        resolved[row.filename] = by_name.get(row.filename) or by_name.get(Path(row.filename).name) or str(base / row.filename)
    return resolved


def main(argv=None):
    """Command-line usage: print the index of a bundle with its global page ranges."""
    args = _parse_cli_args(argv)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    config = EngineConfig(EngineConfigParams(session_id=timestamp, timestamp=timestamp, page_num_style=args.page_num_style))
    configure_logger(config, to_file=args.log)

    rows = _rows_from_inputs(args)
    if not rows:
        bunindex_logger.error("Nothing to index: give PDF files or an -index CSV")
        return 2

    files = _resolve_files(rows, args.input_files, args.index)
    counts_by_path, errors = fetch_page_counts(PdfEvidenceProvider(), files.values())
    page_counts = {name: counts_by_path[path] for name, path in files.items() if path in counts_by_path}

    store = EntryStore(rows_to_entries(args.case, rows, page_counts))
    case_details = {"bundle_title": args.bundlename, "claim_no": args.claimno, "case_name": args.casename}
    show_dates = args.date_setting != "hide_date"

    first_page = 1
    if args.after_index:
        first_page = 1 + estimate_toc_pages(len(rows), config.toc_rows_per_page)
    view = BundleIndexView(store, first_page=first_page).view(args.case)

    toc_rows = build_toc_preview(view.entries)
    if args.pdf:
        buffer, toc_pages = create_toc_pdf(toc_rows, case_details, show_dates=show_dates, confidential=args.confidential)
        if args.after_index and toc_pages + 1 != first_page:
            bunindex_logger.info(f"Printed index takes {toc_pages} pages, renumbering")
            view = BundleIndexView(store, first_page=toc_pages + 1).view(args.case)
            toc_rows = build_toc_preview(view.entries)
            buffer, _ = create_toc_pdf(toc_rows, case_details, show_dates=show_dates, confidential=args.confidential)
        pdf_path = Path(args.pdf).with_name(secure_filename(Path(args.pdf).name))
        pdf_path.write_bytes(buffer.getvalue())
        bunindex_logger.info(f"Index preview written to {pdf_path}")
    if args.docx:
        docx_path = Path(args.docx).with_name(secure_filename(Path(args.docx).name))
        create_toc_docx(toc_rows, case_details, docx_path, DocxConfig(confidential=args.confidential, show_dates=show_dates))
        bunindex_logger.info(f"Index preview written to {docx_path}")

    total = view.total_pages
    for group in view.sections:
        if group.label is not None:
            print(f"== {group.label} (pages {group.page_start}-{group.page_end})")
        for entry in group.members:
            stamp = format_page_stamp(entry.page_start, total, config.page_num_style, config.footer_prefix)
            print(f"  {entry.page_start:>5}-{entry.page_end:<5} {entry.title}  [{stamp}]")
    print(f"Total pages: {total}")

    if args.scroll is not None:
        viewport = args.viewport if args.viewport is not None else config.item_height * 2
        page_count = max(0, total - first_page + 1) if total else 0
        window = compute_virtual_window(page_count, config.item_height, args.scroll, viewport, config.overscan)
        print(
            f"Render pages {window.start_index + first_page}-{window.end_index + first_page - 1} "
            f"(top padding {window.top_padding:.0f}, bottom padding {window.bottom_padding:.0f})"
        )

    return 1 if errors else 0


if __name__ == "__main__":
    sys.exit(main())
