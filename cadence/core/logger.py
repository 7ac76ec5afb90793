"""Logging setup for the cadence scheduler.

Modules log through ``logger.bind(user_id=..., enrollment_id=...)``. The bound
fields are rendered after the message as sorted ``key=value`` pairs so one
user's or one enrollment's history can be grepped out of the stream.
"""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level> <dim>{extra[context]}</dim>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message} {extra[context]}"


def _render_context(record) -> None:
    fields = {key: value for key, value in record["extra"].items() if key != "context" and value is not None}
    record["extra"]["context"] = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))


def setup_logger(
    level: str = "INFO",
    log_file: str | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
    compression: str | None = "zip",
) -> None:
    """Replace all sinks with a console sink and an optional file sink.

    Args:
        level: Minimum level for every sink
        log_file: Optional path of a rotating log file
        rotation: Size or age at which the file rotates (e.g., "10 MB", "1 day")
        retention: How long rotated files are kept (e.g., "7 days")
        serialize: Write the file sink as JSON lines instead of text
        compression: Archive format applied to the file when it is closed or rotated
    """
    logger.configure(
        handlers=[{"sink": sys.stderr, "format": CONSOLE_FORMAT, "level": level, "colorize": True}],
        patcher=_render_context,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            format=FILE_FORMAT,
            level=level,
            rotation=rotation,
            retention=retention,
            compression=compression,
            serialize=serialize,
            backtrace=True,
            diagnose=False,
        )

    logger.bind(log_file=log_file).debug(f"Logging configured at {level}")
