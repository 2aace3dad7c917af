"""Root logger setup for lrcd, driven by the [logging] part of ServerConfig."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any

from .config import ServerConfig

_FALLBACK_FORMAT = ServerConfig.log_format


def _parse_level(value: Any, default: int) -> int:
    """Accept a level name (any case, WARN included) or a number."""
    if isinstance(value, int):
        return value
    text = str(value or "").strip().upper()
    if not text:
        return default
    if text.isdigit():
        return int(text)
    level = logging.getLevelNamesMapping().get(text)
    return default if level is None else level


def resolve_log_file(cfg: ServerConfig, override: str | None = None) -> Path | None:
    """Pick the log file: the override wins over the config, and blank disables."""
    value = cfg.log_file if override is None else override
    if value is None or not str(value).strip():
        return None
    return Path(str(value)).expanduser()


def _open_log_file(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    try:
        # Logs carry peer addresses and nicknames.
        os.chmod(path, 0o600)
    except OSError:
        pass
    return handler


def configure_logging(
    cfg: ServerConfig,
    *,
    override_level: str | None = None,
    override_file: str | None = None,
) -> None:
    """Install console and/or file handlers on the root logger.

    Calling it again replaces the handlers from the previous call, so the
    ``lrcd.*`` loggers never log twice.
    """
    handlers: list[logging.Handler] = []
    if cfg.log_console:
        handlers.append(logging.StreamHandler(sys.stderr))

    log_file = resolve_log_file(cfg, override_file)
    if log_file is not None:
        handlers.append(_open_log_file(log_file))

    formatter = logging.Formatter(
        fmt=str(cfg.log_format).strip() or _FALLBACK_FORMAT,
        datefmt=cfg.log_datefmt or None,
    )

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in handlers:
        h.setFormatter(formatter)
        root.addHandler(h)

    root.setLevel(_parse_level(override_level or cfg.log_level, logging.INFO))
    logging.captureWarnings(True)
