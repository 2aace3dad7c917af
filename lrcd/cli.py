from __future__ import annotations

import argparse
import os
import sys
from dataclasses import replace

from .config import ServerConfig, apply_config_data, default_config_path, load_toml
from .constants import DEFAULT_PORT
from .logging_config import configure_logging
from .service import HubService


def _write_default_config(config_path: str) -> None:
    cfg_dir = os.path.dirname(config_path)
    if cfg_dir:
        os.makedirs(cfg_dir, mode=0o700, exist_ok=True)

    defaults = ServerConfig()
    content = f"""# lrcd configuration (TOML)
#
# Command-line flags override values in this file.

[server]

# Address and TCP port to listen on.
host = {defaults.host!r}
port = {defaults.port}
listen_backlog = {defaults.listen_backlog}

# Per-connection limits.
#
# max_line_bytes: a client that sends more than this many bytes without a
# newline is disconnected.
# max_outbound_bytes: a client that stops reading and lets this much output
# pile up is disconnected.
max_line_bytes = {defaults.max_line_bytes}
max_outbound_bytes = {defaults.max_outbound_bytes}
recv_chunk_bytes = {defaults.recv_chunk_bytes}

# Name policy (characters).
nick_max_chars = {defaults.nick_max_chars}
max_room_name_len = {defaults.max_room_name_len}

# Log a statistics summary every N seconds (0 disables).
stats_interval_s = {defaults.stats_interval_s}

[logging]

# Log level (DEBUG, INFO, WARNING, ERROR).
level = {defaults.log_level!r}

# Log to stderr.
console = true

# Optional file path for logs (leave empty to disable).
file = ""

# Log format and optional date format.
format = {defaults.log_format!r}
datefmt = ""
"""

    with open(config_path, "w", encoding="utf-8") as f:
        f.write(content)


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="lrcd", description="Run an LRC chat server")

    p.add_argument(
        "--config",
        default=None,
        help=f"Path to a TOML config file (default: {default_config_path()} if present)",
    )
    p.add_argument(
        "--write-config",
        action="store_true",
        help="Write a default config file to the --config path and exit",
    )

    p.add_argument("--host", default=None, help="Address to bind (default: 0.0.0.0)")
    p.add_argument(
        "--port", type=int, default=None, help=f"TCP port to listen on (default: {DEFAULT_PORT})"
    )

    p.add_argument(
        "--max-line-bytes",
        type=int,
        default=None,
        help="Disconnect clients that send more than this without a newline",
    )
    p.add_argument(
        "--max-outbound-bytes",
        type=int,
        default=None,
        help="Disconnect clients whose unsent output exceeds this many bytes",
    )
    p.add_argument(
        "--stats-interval",
        type=float,
        default=None,
        help="Log a statistics summary every N seconds (0 disables)",
    )

    p.add_argument(
        "--log-level",
        default=None,
        help="Logging level override (DEBUG, INFO, WARNING, ERROR). Default comes from config.",
    )
    p.add_argument(
        "--log-file",
        default=None,
        help="Log file path override (empty disables file logging). Default comes from config.",
    )

    return p


def build_config(args: argparse.Namespace) -> ServerConfig:
    cfg = ServerConfig()

    config_path = args.config
    if config_path is None and default_config_path().exists():
        config_path = str(default_config_path())

    if config_path:
        if not os.path.exists(config_path):
            raise SystemExit(f"config file not found: {config_path}")
        cfg = replace(cfg, config_path=str(config_path))
        cfg = apply_config_data(cfg, load_toml(config_path))

    if args.host is not None:
        cfg = replace(cfg, host=str(args.host))
    if args.port is not None:
        cfg = replace(cfg, port=int(args.port))
    if args.max_line_bytes is not None:
        cfg = replace(cfg, max_line_bytes=int(args.max_line_bytes))
    if args.max_outbound_bytes is not None:
        cfg = replace(cfg, max_outbound_bytes=int(args.max_outbound_bytes))
    if args.stats_interval is not None:
        cfg = replace(cfg, stats_interval_s=float(args.stats_interval))

    if args.log_level is not None:
        cfg = replace(cfg, log_level=str(args.log_level))
    if args.log_file is not None:
        cfg = replace(cfg, log_file=str(args.log_file) if str(args.log_file) else None)

    return cfg


def main(argv: list[str] | None = None) -> None:
    args = _build_arg_parser().parse_args(sys.argv[1:] if argv is None else argv)

    if args.write_config:
        config_path = str(args.config or default_config_path())
        if os.path.exists(config_path):
            print(f"Refusing to overwrite existing config: {config_path}", file=sys.stderr)
            raise SystemExit(1)
        _write_default_config(config_path)
        print(f"Wrote default config to {config_path}", file=sys.stderr)
        raise SystemExit(0)

    try:
        cfg = build_config(args)
    except ValueError as e:
        print(f"lrcd: {e}", file=sys.stderr)
        raise SystemExit(2) from e

    configure_logging(cfg, override_level=args.log_level, override_file=args.log_file)

    svc = HubService(cfg)
    svc.start()
    svc.run_forever()


if __name__ == "__main__":
    main()
