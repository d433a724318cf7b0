import logging
import os
import tempfile
import uuid
from pathlib import Path

from colorlog import ColoredFormatter
from flask import Flask, current_app, jsonify, request, send_file
from waitress import serve
from werkzeug.utils import secure_filename

from bunindex.engine_config import EngineConfig
from bunindex.entry import IndexEntry, is_editable, new_evidence_entry
from bunindex.entry_store import EntryStore
from bunindex.errors import MeasurementError, NotFoundError, ValidationError
from bunindex.evidence import count_pdf_stream_pages
from bunindex.logger import LOG_COLORS
from bunindex.makedocxindex import DocxConfig, create_toc_docx
from bunindex.page_break import estimate_page_count
from bunindex.page_ranges import entry_at_page, format_page_stamp
from bunindex.projection import BundleIndexView
from bunindex.virtual_window import compute_virtual_window

EXTENSION_KEY = "bunindex"


class EngineState:
    """The in-memory engine behind one app instance."""

    def __init__(self, config: EngineConfig):
        self.config = config
        self.store = EntryStore()
        self.view = BundleIndexView(self.store)


def _state() -> EngineState:
    return current_app.extensions[EXTENSION_KEY]


def _error(message: str, status: int):
    return jsonify({"status": "error", "message": message}), status


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _float_arg(name: str, default: float) -> float:
    value = request.args.get(name)
    if value in (None, ""):
        return default
    try:
        return float(value)
    except ValueError:
        raise ValidationError(f"Query parameter {name} must be a number, got {value!r}", field=name) from None


def _case_payload(case_id: str):
    view = _state().view.view(case_id)
    return {"caseId": case_id, "totalPages": view.total_pages, "entries": [e.to_dict() for e in view.entries]}


def list_entries(case_id):
    return jsonify(_case_payload(case_id))


def create_entry(case_id):
    data = _json_body()
    data["caseId"] = case_id
    position = data.pop("position", None)
    if position is not None and not isinstance(position, int):
        raise ValidationError(f"position must be an integer, got {position!r}", field="position")
    entry = _state().store.insert(IndexEntry.from_dict(data), at_position=position)
    current_app.logger.info(f"[API]Created {entry.row_type.value} {entry.id} in case {case_id}")
    return jsonify({"status": "success", "entry": entry.to_dict(), **_case_payload(case_id)}), 201


def upload_evidence(case_id):
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return _error("No file found. Please add a PDF and try again.", 400)

    filename = secure_filename(upload.filename)
    page_count = count_pdf_stream_pages(upload.stream, filename)
    description = request.form.get("description") or Path(filename).stem
    entry = new_evidence_entry(case_id, request.form.get("fileId") or filename, page_count, description=description, date=request.form.get("date", ""))
    entry = _state().store.insert(entry, at_position=request.form.get("position", type=int))
    current_app.logger.info(f"[API]Added evidence {filename} ({page_count} pages) to case {case_id}")
    return jsonify({"status": "success", "entry": entry.to_dict(), **_case_payload(case_id)}), 201


def delete_entry(entry_id):
    _state().store.remove(entry_id)
    return jsonify({"status": "success"})


def update_page_count(entry_id):
    data = _json_body()
    entry = _state().store.update_page_count(entry_id, data.get("pageCount"))
    return jsonify({"status": "success", "entry": entry.to_dict()})


def reorder_entries(case_id):
    data = _json_body()
    entry_ids = data.get("entryIds")
    if not isinstance(entry_ids, list):
        raise ValidationError("entryIds must be a list of entry ids", field="entryIds")
    _state().store.reorder(case_id, entry_ids)
    return jsonify(_case_payload(case_id))


def report_measurement(entry_id):
    """Measured content height for an editable entry, already debounced by the client."""
    state = _state()
    data = _json_body()
    entry = state.store.get(entry_id)
    if not is_editable(entry):
        raise ValidationError(f"Entry {entry_id} of type {entry.row_type.value} is not measured", field="height")
    page_count = estimate_page_count(data.get("height"), state.config.page_height, state.config.page_margin)
    entry = state.store.update_page_count(entry_id, page_count)
    return jsonify({"status": "success", "entry": entry.to_dict(), "pageCount": page_count})


def list_sections(case_id):
    view = _state().view.view(case_id)
    sections = [
        {
            "label": group.label,
            "pageStart": group.page_start,
            "pageEnd": group.page_end,
            "entryIds": [e.id for e in group.entries],
        }
        for group in view.sections
    ]
    return jsonify({"caseId": case_id, "totalPages": view.total_pages, "sections": sections})


def table_of_contents(case_id):
    view = _state().view.view(case_id)
    rows = [row._asdict() for row in view.toc]
    return jsonify({"caseId": case_id, "totalPages": view.total_pages, "rows": rows})


def table_of_contents_docx(case_id):
    view = _state().view.view(case_id)
    case_details = {
        "bundle_title": request.args.get("bundle_title", "Bundle"),
        "case_name": request.args.get("case_name", ""),
        "claim_no": request.args.get("claim_no", ""),
    }
    out_dir = Path(tempfile.gettempdir()) / "bunindex" / "toc"
    out_dir.mkdir(parents=True, exist_ok=True)
    output = out_dir / f"{secure_filename(case_id) or 'case'}_{uuid.uuid4().hex[:8]}.docx"
    create_toc_docx(view.toc, case_details, output, DocxConfig(confidential=request.args.get("confidential") == "1"))
    return send_file(output, as_attachment=True, download_name=f"{secure_filename(case_id) or 'case'}_index.docx")


def virtual_window(case_id):
    """The slice of bundle pages a viewer should build for the given scroll position."""
    state = _state()
    config = state.config
    view = state.view.view(case_id)
    window = compute_virtual_window(
        view.total_pages,
        _float_arg("itemHeight", config.item_height),
        _float_arg("scroll", 0.0),
        _float_arg("viewport", config.item_height * 2),
        _float_arg("overscan", config.overscan),
    )
    pages = []
    for index in window.indices():
        page = index + 1
        owner = entry_at_page(view.entries, page)
        pages.append(
            {
                "page": page,
                "entryId": owner.id if owner else None,
                "stamp": format_page_stamp(page, view.total_pages, config.page_num_style, config.footer_prefix),
            }
        )
    return jsonify(
        {
            "startIndex": window.start_index,
            "endIndex": window.end_index,
            "topPadding": window.top_padding,
            "bottomPadding": window.bottom_padding,
            "pages": pages,
        }
    )


def _register_error_handlers(app: Flask):
    @app.errorhandler(ValidationError)
    def _validation_error(e):
        current_app.logger.warning(f"[API]Rejected: {e}")
        return _error(str(e), 400)

    @app.errorhandler(NotFoundError)
    def _not_found(e):
        return _error(str(e), 404)

    @app.errorhandler(MeasurementError)
    def _measurement_error(e):
        current_app.logger.warning(f"[API]Bad measurement: {e}")
        return _error(str(e), 422)


def create_app(config: EngineConfig | None = None):
    """Flask application factory."""
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = 100 * 1024 * 1024  # file size limit in MB
    app.logger.setLevel(logging.DEBUG)
    app.logger.propagate = False

    for handler in app.logger.handlers:
        if isinstance(handler, logging.StreamHandler):
            handler.setFormatter(ColoredFormatter("%(log_color)s%(asctime)s - %(levelname)s - [APP]: %(message)s", log_colors=LOG_COLORS, reset=True))

    app.extensions[EXTENSION_KEY] = EngineState(config or EngineConfig.from_env())
    _register_error_handlers(app)

    app.add_url_rule("/cases/<case_id>/entries", view_func=list_entries, methods=["GET"])
    app.add_url_rule("/cases/<case_id>/entries", view_func=create_entry, methods=["POST"])
    app.add_url_rule("/cases/<case_id>/evidence", view_func=upload_evidence, methods=["POST"])
    app.add_url_rule("/cases/<case_id>/reorder", view_func=reorder_entries, methods=["POST"])
    app.add_url_rule("/cases/<case_id>/sections", view_func=list_sections, methods=["GET"])
    app.add_url_rule("/cases/<case_id>/toc", view_func=table_of_contents, methods=["GET"])
    app.add_url_rule("/cases/<case_id>/toc.docx", view_func=table_of_contents_docx, methods=["GET"])
    app.add_url_rule("/cases/<case_id>/window", view_func=virtual_window, methods=["GET"])
    app.add_url_rule("/entries/<entry_id>", view_func=delete_entry, methods=["DELETE"])
    app.add_url_rule("/entries/<entry_id>/page-count", view_func=update_page_count, methods=["PUT"])
    app.add_url_rule("/entries/<entry_id>/measurement", view_func=report_measurement, methods=["POST"])
    return app


def main():
    """Creates and runs the Flask application."""
    created_app = create_app()
    host = os.environ.get("BUNINDEX_HOST", "127.0.0.1")
    port = int(os.environ.get("BUNINDEX_PORT", "7002"))

    if os.environ.get("BUNINDEX_DEV"):
        created_app.logger.info(f"APP - Starting in DEVELOPMENT mode on {host}:{port}")
        created_app.run(host=host, port=port, debug=True)  # nosec B201
    else:
        # one worker thread: the engine state is not shared across threads
        created_app.logger.info(f"APP - Server started on {host}:{port} (Production/Waitress).")
        serve(created_app, host=host, port=port, threads=1, connection_limit=100, channel_timeout=120)


if __name__ == "__main__":
    main()
