"""
Tests for the command-line entrypoint.
"""

import pytest

import svcboot.__main__ as cli
from svcboot.app import App
from svcboot.lifecycle import ForcedShutdownError

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ["SVCBOOT_CONFIG_FILE", "SVCBOOT_PORT", "SVCBOOT_LOG_FORMAT"]:
        # setenv first so values loaded from a dotenv file are undone too
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


@pytest.fixture
def captured_apps(monkeypatch):
    """Record every app the CLI boots instead of serving it."""
    apps = []
    outcome = {"error": None}

    def fake_run(self, port=None):
        apps.append(self)
        if outcome["error"] is not None:
            raise outcome["error"]

    monkeypatch.setattr(App, "run_server_with_graceful_shutdown", fake_run)
    return apps, outcome


def test_arguments_reach_config(captured_apps):
    apps, _ = captured_apps

    exit_code = cli.main(
        ["--port", "9100", "--host", "127.0.0.1", "--shutdown-timeout", "2", "--log-format", "console"]
    )

    assert exit_code == 0
    [app] = apps
    assert app.config.server.port == 9100
    assert app.config.server.host == "127.0.0.1"
    assert app.config.server.shutdown_timeout == 2.0
    assert app.config.logging.format == "console"


def test_forced_shutdown_exits_non_zero(captured_apps):
    apps, outcome = captured_apps
    outcome["error"] = ForcedShutdownError(5.0, pending_requests=2)

    assert cli.main(["--log-format", "console"]) == 1
    assert len(apps) == 1


def test_configuration_error_exits_non_zero(captured_apps, capsys):
    apps, _ = captured_apps

    assert cli.main(["--config", "missing.toml"]) == 1
    assert apps == []
    assert "not found" in capsys.readouterr().err


def test_invalid_port_is_a_configuration_error(captured_apps):
    assert cli.main(["--port", "70000"]) == 1


def test_env_file_feeds_configuration(captured_apps, tmp_path):
    apps, _ = captured_apps
    env_file = tmp_path / "service.env"
    env_file.write_text("SVCBOOT_PORT=9300\nSVCBOOT_LOG_FORMAT=console\n")

    assert cli.main(["--env-file", str(env_file)]) == 0
    assert apps[0].config.server.port == 9300


def test_flags_win_over_env_file(captured_apps, tmp_path):
    apps, _ = captured_apps
    (tmp_path / ".env").write_text("SVCBOOT_PORT=9300\n")

    assert cli.main(["--port", "9400", "--log-format", "console"]) == 0
    assert apps[0].config.server.port == 9400
