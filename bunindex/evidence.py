"""Page counts for immutable evidence files.

Evidence PDFs are never modified by the engine; the only thing it needs from
them is how many pages they contribute. Counting is done with pikepdf, one
file per worker thread, and every file succeeds or fails on its own.
"""

import io
import logging
import os
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from itertools import count
from pathlib import Path
from typing import BinaryIO, Protocol

from pikepdf import PdfError, Pdf

from bunindex.errors import EvidenceError
from bunindex.logger import init_worker

CPU_COUNT = os.cpu_count()

bunindex_logger = logging.getLogger("bunindex")


class EvidenceProvider(Protocol):
    def page_count(self, file_ref: str) -> int: ...


class PdfEvidenceProvider:
    """Resolves file references to PDF paths (optionally under a root directory) and counts their pages."""

    def __init__(self, root: Path | None = None):
        self.root = Path(root) if root else None

    def resolve(self, file_ref: str) -> Path:
        path = Path(file_ref)
        if self.root and not path.is_absolute():
            path = self.root / path
        return path

    def page_count(self, file_ref: str) -> int:
        path = self.resolve(file_ref)
        if not path.exists():
            raise EvidenceError(file_ref, "file does not exist")
        try:
            with Pdf.open(path) as pdf:
                pages = len(pdf.pages)
        except (PdfError, OSError) as e:
            raise EvidenceError(file_ref, str(e)) from e
        if pages < 1:
            raise EvidenceError(file_ref, "PDF has no pages")
        bunindex_logger.debug(f"[EVD]..{file_ref}: {pages} pages")
        return pages


def count_pdf_stream_pages(stream: BinaryIO, name: str = "<upload>") -> int:
    """Count the pages of an uploaded PDF without writing it to disk."""
    stream.seek(0)
    try:
        with Pdf.open(io.BytesIO(stream.read())) as pdf:
            pages = len(pdf.pages)
    except PdfError as e:
        raise EvidenceError(name, str(e)) from e
    finally:
        stream.seek(0)
    if pages < 1:
        raise EvidenceError(name, "PDF has no pages")
    return pages


def _count_one(provider: EvidenceProvider, file_ref: str) -> tuple[str, int]:
    return file_ref, provider.page_count(file_ref)


def fetch_page_counts(provider: EvidenceProvider, file_refs: Iterable[str], max_workers: int | None = None) -> tuple[dict[str, int], dict[str, EvidenceError]]:
    """Count pages of many evidence files concurrently.

    Returns (counts, errors), both keyed by file reference. A failing file is
    reported in errors and does not hold up or affect the others; nothing is
    retried.
    """
    counts: dict[str, int] = {}
    errors: dict[str, EvidenceError] = {}
    unique_refs = list(dict.fromkeys(file_refs))
    if not unique_refs:
        return counts, errors

    with ThreadPoolExecutor(max_workers=max_workers or CPU_COUNT, initializer=init_worker, initargs=(count(1),)) as executor:
        future_to_ref = {executor.submit(_count_one, provider, ref): ref for ref in unique_refs}
        for future in as_completed(future_to_ref):
            file_ref = future_to_ref[future]
            try:
                _, pages = future.result()
            except EvidenceError as e:
                bunindex_logger.error(f"[EVD]Could not count pages of {file_ref}: {e}")
                errors[file_ref] = e
            else:
                counts[file_ref] = pages

    bunindex_logger.info(f"[EVD]Counted pages for {len(counts)} of {len(unique_refs)} evidence files")
    return counts, errors
