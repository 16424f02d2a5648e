"""Logging setup for the study-plan service.

Modules log through loguru with a bracketed component prefix, e.g.
"[PLAN_STORE] Added task ...". LOG_COMPONENTS narrows the output to the
listed components; lines without a prefix are always kept.
"""

import re
import sys
from collections.abc import Callable
from pathlib import Path

from loguru import logger

from studyplan.config.settings import Settings

_COMPONENT_PREFIX = re.compile(r"^\[([A-Z][A-Z_]*)\]")

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{line} - {message}"


def component_of(message: str) -> str | None:
    """Return the bracketed component prefix of a log message, if any."""
    match = _COMPONENT_PREFIX.match(message)
    return match.group(1) if match else None


def component_filter(components: str | None) -> Callable[[dict], bool] | None:
    """Build a loguru filter that keeps only the given components.

    Args:
        components: Comma-separated component names (e.g. "PLAN_STORE,LIFECYCLE")

    Returns:
        Filter callable, or None when no component is named
    """
    wanted = {name.strip().upper() for name in (components or "").split(",") if name.strip()}
    if not wanted:
        return None

    def keep(record: dict) -> bool:
        component = component_of(record["message"])
        return component is None or component in wanted

    return keep


def setup_logger(app_settings: Settings) -> None:
    """Configure loguru sinks from settings.

    Console output always goes to stderr; LOG_FILE adds a rotating file
    sink with the same level and component filter.
    """
    logger.remove()
    record_filter = component_filter(app_settings.log_components)

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=app_settings.log_level,
        filter=record_filter,
        colorize=True,
    )

    if app_settings.log_file:
        log_path = Path(app_settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            format=FILE_FORMAT,
            level=app_settings.log_level,
            filter=record_filter,
            rotation=app_settings.log_rotation,
            retention=app_settings.log_retention,
            encoding="utf-8",
        )

    scope = app_settings.log_components or "all components"
    logger.info(f"[APP] Logging at {app_settings.log_level} for {scope}")
