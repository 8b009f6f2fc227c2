"""Logging initialization helpers."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from scribeflow.config import Settings

_CONFIGURED_ATTR = "_scribeflow_configured"


def _resolve_level(name: str | None, default: int = logging.INFO) -> int:
    level = getattr(logging, str(name or "").upper(), None)
    return level if isinstance(level, int) else default


def _build_handlers(settings: Settings, level: int) -> list[logging.Handler]:
    formatter = logging.Formatter(fmt=str(settings.logging.format), datefmt=str(settings.logging.datefmt))
    handlers: list[logging.Handler] = []
    if settings.logging.console:
        handlers.append(logging.StreamHandler())

    if settings.logging.file:
        file_path = Path(str(settings.logging.file))
        if not file_path.is_absolute():
            file_path = Path(settings.log_dir) / file_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                file_path,
                maxBytes=int(settings.logging.max_bytes),
                backupCount=int(settings.logging.backup_count),
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging(settings: Settings, *, level: str | None = None, force: bool = False) -> None:
    """Install handlers on the `scribeflow` logger.

    Runs once per process unless `force` is set; `level` overrides
    `LOG_LEVEL` (the dev script uses it for `--verbose`). Loggers listed in
    `LOG_QUIET_LOGGERS` are capped at WARNING so per-request httpx lines do
    not drown segment progress when the host configures the root logger.
    """
    logger = logging.getLogger("scribeflow")
    if getattr(logger, _CONFIGURED_ATTR, False) and not force:
        return

    resolved = _resolve_level(level or settings.logging.level)
    for old in logger.handlers:
        old.close()
    logger.handlers = _build_handlers(settings, resolved)
    logger.setLevel(resolved)
    logger.propagate = False

    for name in settings.logging.quiet_loggers:
        third_party = logging.getLogger(name)
        if third_party.level < logging.WARNING:
            third_party.setLevel(logging.WARNING)

    setattr(logger, _CONFIGURED_ATTR, True)
