from __future__ import annotations

import os
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any

from .constants import DEFAULT_PORT

CONFIG_FILENAME = "lrcd.toml"


def default_config_path() -> Path:
    """Config file looked up when --config is not given: $LRCD_HOME/lrcd.toml or ~/.lrcd/lrcd.toml."""
    home = os.environ.get("LRCD_HOME")
    base = Path(home) if home else Path.home() / ".lrcd"
    return base / CONFIG_FILENAME


@dataclass(frozen=True)
class ServerConfig:
    config_path: str | None = None
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    listen_backlog: int = 128
    recv_chunk_bytes: int = 16384
    max_line_bytes: int = 4096
    max_outbound_bytes: int = 1024 * 1024  # 1 MiB of unsent output per client
    nick_max_chars: int = 32
    max_room_name_len: int = 64
    select_timeout_s: float = 0.25
    stats_interval_s: float = 0.0
    log_level: str = "INFO"
    log_console: bool = True
    log_file: str | None = None
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    log_datefmt: str | None = None


_INT_KEYS = (
    "port",
    "listen_backlog",
    "recv_chunk_bytes",
    "max_line_bytes",
    "max_outbound_bytes",
    "nick_max_chars",
    "max_room_name_len",
)
_FLOAT_KEYS = ("select_timeout_s", "stats_interval_s")
_OPTIONAL_STR_KEYS = ("log_file", "log_datefmt")


def load_toml(path: str) -> dict:
    import tomllib

    with open(path, "rb") as f:
        data = tomllib.load(f)
    return data if isinstance(data, dict) else {}


def apply_config_data(base: ServerConfig, data: dict[str, Any]) -> ServerConfig:
    """Return `base` updated with values from a parsed TOML document.

    Keys may live at the top level or under a ``[server]`` table. A
    ``[logging]`` table maps ``level``, ``console``, ``file``, ``format`` and
    ``datefmt`` onto the ``log_*`` fields. Unknown keys are ignored.
    """
    server = data.get("server") if isinstance(data, dict) else None
    if isinstance(server, dict):
        data = {**data, **server}

    log_table = data.get("logging") if isinstance(data, dict) else None
    if isinstance(log_table, dict):
        mapped: dict[str, object] = {}
        for src, dst in (
            ("level", "log_level"),
            ("console", "log_console"),
            ("file", "log_file"),
            ("format", "log_format"),
            ("datefmt", "log_datefmt"),
        ):
            if src in log_table:
                mapped[dst] = log_table.get(src)
        data = {**data, **mapped}

    allowed = set(asdict(base).keys())
    # Identifies where the config came from; the file cannot override it.
    allowed.discard("config_path")
    updates = {k: v for k, v in data.items() if k in allowed}

    for key in _INT_KEYS:
        if key in updates:
            try:
                updates[key] = int(updates[key])
            except (TypeError, ValueError) as e:
                raise ValueError(f"invalid integer for {key}: {updates[key]!r}") from e
    for key in _FLOAT_KEYS:
        if key in updates:
            try:
                updates[key] = float(updates[key])
            except (TypeError, ValueError) as e:
                raise ValueError(f"invalid number for {key}: {updates[key]!r}") from e
    for key in _OPTIONAL_STR_KEYS:
        if key in updates and updates[key] == "":
            updates[key] = None
    if "log_console" in updates:
        updates["log_console"] = bool(updates["log_console"])

    return replace(base, **updates) if updates else base


def validate_config(cfg: ServerConfig) -> None:
    if not 0 <= int(cfg.port) <= 65535:
        raise ValueError(f"port out of range: {cfg.port}")
    if int(cfg.max_line_bytes) <= 0:
        raise ValueError("max_line_bytes must be positive")
    if int(cfg.max_outbound_bytes) <= 0:
        raise ValueError("max_outbound_bytes must be positive")
    if int(cfg.recv_chunk_bytes) <= 0:
        raise ValueError("recv_chunk_bytes must be positive")
    if float(cfg.select_timeout_s) <= 0:
        raise ValueError("select_timeout_s must be positive")
