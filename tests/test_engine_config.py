import logging
from pathlib import Path

from bunindex.engine_config import A4_HEIGHT_PX, DEFAULT_PAGE_GAP_PX, EngineConfig, EngineConfigParams
from bunindex.logger import bunindex_logger, configure_logger


def test_defaults():
    config = EngineConfig()

    assert config.page_height == A4_HEIGHT_PX
    assert config.page_margin == 80
    assert config.usable_page_height == A4_HEIGHT_PX - 80
    assert config.debounce_ms == 500
    assert config.item_height == A4_HEIGHT_PX + DEFAULT_PAGE_GAP_PX
    assert config.overscan == 5
    assert config.page_num_style == "page_x_of_y"
    assert config.toc_rows_per_page == 25
    assert config.session_id == config.timestamp
    assert config.session_id in str(config.logs_dir)


def test_zero_margin_and_debounce_are_kept():
    config = EngineConfig(EngineConfigParams(page_margin=0, debounce_ms=0, overscan=0))

    assert config.page_margin == 0
    assert config.debounce_ms == 0
    assert config.overscan == 0


def test_from_env(tmp_path):
    env = {
        "BUNINDEX_SESSION_ID": "abc",
        "BUNINDEX_PAGE_HEIGHT": "1000",
        "BUNINDEX_PAGE_MARGIN": "100",
        "BUNINDEX_DEBOUNCE_MS": "250",
        "BUNINDEX_OVERSCAN": "2",
        "BUNINDEX_PAGE_NUM_STYLE": "x_slash_y",
        "BUNINDEX_FOOTER_PREFIX": "Bundle",
        "BUNINDEX_LOGS_DIR": str(tmp_path),
    }

    config = EngineConfig.from_env(env)

    assert config.session_id == "abc"
    assert config.usable_page_height == 900
    assert config.debounce_ms == 250
    assert config.item_height == 1000 + DEFAULT_PAGE_GAP_PX
    assert config.overscan == 2
    assert config.page_num_style == "x_slash_y"
    assert config.footer_prefix == "Bundle"
    assert config.logs_dir == Path(tmp_path)


def test_from_env_blank_values_use_defaults():
    config = EngineConfig.from_env({"BUNINDEX_PAGE_HEIGHT": "", "BUNINDEX_OVERSCAN": ""})

    assert config.page_height == A4_HEIGHT_PX
    assert config.overscan == 5


def test_configure_logger_writes_session_file(config):
    logger = configure_logger(config)
    try:
        logger.debug("[TEST]..hello")
        for handler in logger.handlers:
            handler.flush()

        log_file = config.logs_dir / "bunindex_test.log"
        assert log_file.exists()
        assert "hello" in log_file.read_text(encoding="utf-8")
    finally:
        for handler in list(bunindex_logger.handlers):
            handler.close()
        bunindex_logger.handlers.clear()


def test_configure_logger_console_only_replaces_handlers(config):
    configure_logger(config, to_file=False)
    configure_logger(config, to_file=False)
    try:
        assert len(bunindex_logger.handlers) == 1
        assert bunindex_logger.handlers[0].level == logging.INFO
        assert not config.logs_dir.exists()
    finally:
        bunindex_logger.handlers.clear()
