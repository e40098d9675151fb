"""
Tests for configuration loading.
"""

from pathlib import Path

import pytest

from svcboot.config import ConfigError, SvcbootConfig, load_config

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run every test from an empty directory with no SVCBOOT_* variables."""
    monkeypatch.chdir(tmp_path)
    for name in [
        "SVCBOOT_CONFIG_FILE",
        "SVCBOOT_HOST",
        "SVCBOOT_PORT",
        "SVCBOOT_SHUTDOWN_TIMEOUT",
        "SVCBOOT_SURFACE_START_ERRORS",
        "SVCBOOT_ACCESS_LOG",
        "SVCBOOT_LOG_LEVEL",
        "SVCBOOT_LOG_FORMAT",
        "SVCBOOT_LOG_FILE",
    ]:
        monkeypatch.delenv(name, raising=False)


def _write_toml(path: Path) -> Path:
    path.write_text(
        "\n".join(
            [
                "[server]",
                'host = "127.0.0.1"',
                "port = 9100",
                "shutdown_timeout = 2.5",
                "",
                "[logging]",
                'level = "debug"',
                'format = "console"',
            ]
        )
    )
    return path


def test_defaults():
    config = load_config()

    assert config == SvcbootConfig()
    assert config.server.port == 8080
    assert config.server.shutdown_timeout == 5.0
    assert config.server.surface_start_errors is False
    assert config.logging.format == "json"


def test_toml_file(tmp_path):
    config = load_config(_write_toml(tmp_path / "custom.toml"))

    assert config.server.host == "127.0.0.1"
    assert config.server.port == 9100
    assert config.server.shutdown_timeout == 2.5
    assert config.logging.level == "DEBUG"
    assert config.logging.format == "console"


def test_default_file_in_working_directory(tmp_path):
    _write_toml(tmp_path / "svcboot.toml")

    assert load_config().server.port == 9100


def test_config_file_from_environment(monkeypatch, tmp_path):
    path = _write_toml(tmp_path / "elsewhere.toml")
    monkeypatch.setenv("SVCBOOT_CONFIG_FILE", str(path))

    assert load_config().server.port == 9100


def test_environment_overrides_file(monkeypatch, tmp_path):
    path = _write_toml(tmp_path / "custom.toml")
    monkeypatch.setenv("SVCBOOT_PORT", "9200")
    monkeypatch.setenv("SVCBOOT_SURFACE_START_ERRORS", "yes")
    monkeypatch.setenv("SVCBOOT_LOG_FILE", str(tmp_path / "logs" / "svc.log"))

    config = load_config(path)

    assert config.server.port == 9200
    assert config.server.surface_start_errors is True
    assert config.logging.file == tmp_path / "logs" / "svc.log"


def test_explicit_overrides_win(monkeypatch, tmp_path):
    path = _write_toml(tmp_path / "custom.toml")
    monkeypatch.setenv("SVCBOOT_PORT", "9200")

    config = load_config(path, port=0, log_format="json", shutdown_timeout=None)

    assert config.server.port == 0
    assert config.server.shutdown_timeout == 2.5
    assert config.logging.format == "json"


def test_missing_file_raises():
    with pytest.raises(ConfigError, match="not found"):
        load_config("missing.toml")


def test_unparseable_file_raises(tmp_path):
    path = tmp_path / "broken.toml"
    path.write_text("[server\nport = ")

    with pytest.raises(ConfigError, match="Cannot parse"):
        load_config(path)


@pytest.mark.parametrize(
    "env_var,value",
    [
        ("SVCBOOT_PORT", "70000"),
        ("SVCBOOT_PORT", "http"),
        ("SVCBOOT_SHUTDOWN_TIMEOUT", "0"),
        ("SVCBOOT_LOG_LEVEL", "loud"),
        ("SVCBOOT_LOG_FORMAT", "xml"),
        ("SVCBOOT_ACCESS_LOG", "maybe"),
    ],
)
def test_invalid_values_raise(monkeypatch, env_var, value):
    monkeypatch.setenv(env_var, value)

    with pytest.raises(ConfigError):
        load_config()


def test_unknown_override_raises():
    with pytest.raises(ConfigError, match="Unknown configuration override"):
        load_config(workers=4)
