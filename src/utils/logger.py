import sys
from pathlib import Path

from loguru import logger

from config.settings import settings

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level>"
)


def _sync_only(record) -> bool:
    return record["message"].startswith("[SYNC]")


def setup_logger(*, level: str | None = None, json_logs: bool | None = None) -> None:
    """Configure loguru sinks for the proxy and the sync pipeline.

    Console level comes from ``settings.log_level`` unless overridden.
    The main file sink always records DEBUG so cache hit/miss traces
    survive a restart; sync cycles also go to their own file.
    """
    console_level = (level or settings.log_level).upper()
    serialize = settings.log_json if json_logs is None else json_logs
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.remove()
    if serialize:
        logger.add(sys.stdout, serialize=True, level=console_level)
    else:
        logger.add(sys.stdout, format=CONSOLE_FORMAT, level=console_level, colorize=True)

    logger.add(
        log_dir / "creator_radar_{time:YYYY-MM-DD}.log",
        rotation=settings.log_rotation,
        retention=settings.log_retention,
        compression="gz",
        level="DEBUG",
        serialize=serialize,
    )
    logger.add(
        log_dir / "sync_{time:YYYY-MM-DD}.log",
        rotation=settings.log_rotation,
        retention=settings.log_retention,
        level="DEBUG",
        filter=_sync_only,
    )
