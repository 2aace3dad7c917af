import pytest

from lrcd.config import ServerConfig, apply_config_data, load_toml, validate_config


def test_defaults() -> None:
    cfg = ServerConfig()
    assert cfg.port == 8000
    assert cfg.max_line_bytes > 0
    validate_config(cfg)


def test_server_and_logging_tables(tmp_path) -> None:
    p = tmp_path / "lrcd.toml"
    p.write_text(
        """
[server]
port = 9001
max_line_bytes = 1024
config_path = "/ignored"
unknown_key = 1

[logging]
level = "DEBUG"
file = ""
console = false
""",
        encoding="utf-8",
    )
    cfg = apply_config_data(ServerConfig(config_path=str(p)), load_toml(str(p)))
    assert cfg.port == 9001
    assert cfg.max_line_bytes == 1024
    assert cfg.config_path == str(p)
    assert cfg.log_level == "DEBUG"
    assert cfg.log_file is None
    assert cfg.log_console is False


def test_top_level_keys_are_accepted() -> None:
    cfg = apply_config_data(ServerConfig(), {"port": "7000", "stats_interval_s": 5})
    assert cfg.port == 7000
    assert cfg.stats_interval_s == 5.0


def test_bad_values_rejected() -> None:
    with pytest.raises(ValueError):
        apply_config_data(ServerConfig(), {"port": "not-a-port"})
    with pytest.raises(ValueError):
        validate_config(ServerConfig(port=70000))
    with pytest.raises(ValueError):
        validate_config(ServerConfig(max_line_bytes=0))
