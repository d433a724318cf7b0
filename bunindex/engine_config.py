import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import NamedTuple

# A4 at 96 DPI, the size the editing surface lays pages out at.
A4_HEIGHT_PX = 1123
DEFAULT_PAGE_MARGIN_PX = 80
DEFAULT_PAGE_GAP_PX = 24


class EngineConfigParams(NamedTuple):
    session_id: str = ""
    timestamp: str = ""
    page_height: float | None = None
    page_margin: float | None = None
    debounce_ms: float | None = None
    frame_interval_ms: float | None = None
    item_height: float | None = None
    overscan: int | None = None
    page_num_style: str = ""
    footer_prefix: str = ""
    toc_rows_per_page: int | None = None
    logs_dir: Path | None = None


@dataclass(init=False)
class EngineConfig:
    def __init__(self, engine_config_params: EngineConfigParams | None = None):
        (
            session_id,
            timestamp,
            page_height,
            page_margin,
            debounce_ms,
            frame_interval_ms,
            item_height,
            overscan,
            page_num_style,
            footer_prefix,
            toc_rows_per_page,
            logs_dir,
        ) = engine_config_params or EngineConfigParams()

        self.timestamp = timestamp or datetime.now().strftime("%Y-%m-%d-%H%M%S")
        self.session_id = session_id if session_id else self.timestamp
        self.page_height = page_height if page_height else A4_HEIGHT_PX
        # zero is a legitimate margin
        self.page_margin = page_margin if page_margin is not None else DEFAULT_PAGE_MARGIN_PX
        self.debounce_ms = debounce_ms if debounce_ms is not None else 500
        self.frame_interval_ms = frame_interval_ms if frame_interval_ms else 16
        self.item_height = item_height if item_height else self.page_height + DEFAULT_PAGE_GAP_PX
        self.overscan = overscan if overscan is not None else 5
        self.page_num_style = page_num_style if page_num_style else "page_x_of_y"
        self.footer_prefix = footer_prefix if footer_prefix else ""
        self.toc_rows_per_page = toc_rows_per_page if toc_rows_per_page else 25
        base_temp = tempfile.gettempdir()
        self.logs_dir = logs_dir if logs_dir else Path(base_temp) / "bunindex" / "logs" / self.session_id

    @property
    def usable_page_height(self) -> float:
        return self.page_height - self.page_margin

    @classmethod
    def from_env(cls, environ=None) -> "EngineConfig":
        """Build a config from BUNINDEX_* environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ

        def _float(name):
            value = env.get(name)
            return float(value) if value not in (None, "") else None

        def _int(name):
            value = env.get(name)
            return int(value) if value not in (None, "") else None

        logs_dir = env.get("BUNINDEX_LOGS_DIR")
        return cls(
            EngineConfigParams(
                session_id=env.get("BUNINDEX_SESSION_ID", ""),
                page_height=_float("BUNINDEX_PAGE_HEIGHT"),
                page_margin=_float("BUNINDEX_PAGE_MARGIN"),
                debounce_ms=_float("BUNINDEX_DEBOUNCE_MS"),
                frame_interval_ms=_float("BUNINDEX_FRAME_INTERVAL_MS"),
                item_height=_float("BUNINDEX_ITEM_HEIGHT"),
                overscan=_int("BUNINDEX_OVERSCAN"),
                page_num_style=env.get("BUNINDEX_PAGE_NUM_STYLE", ""),
                footer_prefix=env.get("BUNINDEX_FOOTER_PREFIX", ""),
                toc_rows_per_page=_int("BUNINDEX_TOC_ROWS_PER_PAGE"),
                logs_dir=Path(logs_dir) if logs_dir else None,
            )
        )
