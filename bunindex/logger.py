import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Literal

from colorlog import ColoredFormatter

from bunindex.engine_config import EngineConfig

bunindex_logger = logging.getLogger("bunindex")

thread_local = threading.local()

LOG_COLORS = {"DEBUG": "cyan", "INFO": "green", "WARNING": "yellow", "ERROR": "red", "CRITICAL": "red,bg_white"}


def init_worker(counter):
    """Initializer for ThreadPoolExecutor workers to assign a unique ID."""
    thread_local.worker_id = next(counter)


class ThreadIdFormatter(ColoredFormatter):
    """A custom logger formatter to automatically add a worker thread ID to log messages."""

    def __init__(self, fmt=None, datefmt=None, style: Literal["%", "{", "$"] = "%", log_colors=None, reset=True, **kwargs):
        super().__init__(fmt, datefmt, style, log_colors, reset, **kwargs)

    def format(self, record):
        formatted_message = super().format(record)
        if hasattr(thread_local, "worker_id"):
            return f"[🧵-{thread_local.worker_id}] {formatted_message}"
        return formatted_message


def configure_logger(engine_config: EngineConfig | None = None, session_id=None, to_file: bool = True):
    """Configure the engine logger.

    Console output is coloured; when to_file is set a plain per-session log
    file is also written under the config's logs_dir as bunindex_<session>.log.
    """
    # Clear existing handlers to prevent duplicate logs on subsequent runs
    if bunindex_logger.hasHandlers():
        for handler in bunindex_logger.handlers:
            handler.close()
        bunindex_logger.handlers.clear()

    bunindex_logger.setLevel(logging.DEBUG)
    bunindex_logger.propagate = False

    console_formatter = ThreadIdFormatter(
        "%(log_color)s%(asctime)s - %(levelname)s - [IDX]: %(message)s%(reset)s",
        log_colors=LOG_COLORS,
    )
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_formatter)
    bunindex_logger.addHandler(console_handler)

    if not to_file:
        return bunindex_logger

    logs_dir = Path(engine_config.logs_dir) if engine_config else Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)

    if not session_id:
        session_id = engine_config.session_id if engine_config else datetime.now().strftime("%Y%m%d%H%M%S")
    logs_path = logs_dir / f"bunindex_{session_id}.log"
    file_formatter = ThreadIdFormatter("%(asctime)s-%(levelname)s-[IDX]: %(message)s", no_color=True)
    session_file_handler = logging.FileHandler(logs_path)
    session_file_handler.setLevel(logging.DEBUG)
    session_file_handler.setFormatter(file_formatter)
    bunindex_logger.addHandler(session_file_handler)
    return bunindex_logger
