"""Tests for loguru sink setup."""

import sys

from loguru import logger

from config.settings import settings
from src.utils.logger import setup_logger


def test_sync_messages_get_their_own_file(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "log_dir", str(tmp_path / "logs"))
    try:
        setup_logger(level="WARNING")
        logger.info("[SYNC] Cycle 7: 24 tokens")
        logger.info("[CACHE] HIT tokens_marketcap_30")
    finally:
        logger.remove()  # closes file sinks
        logger.add(sys.stderr)

    sync_log = next((tmp_path / "logs").glob("sync_*.log")).read_text()
    main_log = next((tmp_path / "logs").glob("creator_radar_*.log")).read_text()

    assert "Cycle 7" in sync_log
    assert "HIT tokens_marketcap_30" not in sync_log
    assert "HIT tokens_marketcap_30" in main_log
