"""Tests del arranque/apagado del servicio (uvicorn y broker simulados)."""

from unittest.mock import MagicMock

import pytest

from lora_api import cli
from lora_api.errors import MQTTConnectError


@pytest.fixture
def env(monkeypatch, tmp_path):
    for name in ("MQTT_URL", "LORA_HTTP_PORT", "LOG_LEVEL"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.setenv("LORA_ENV_FILE", str(tmp_path / "missing.env"))
    monkeypatch.setenv("MQTT_URL", "mqtt://broker:1883")
    return monkeypatch


@pytest.fixture
def fake_server(env):
    server = MagicMock()
    server.started = True
    server_cls = MagicMock(return_value=server)
    env.setattr(cli.uvicorn, "Server", server_cls)
    return server


@pytest.fixture
def fake_publisher(env):
    publisher = MagicMock()
    env.setattr(cli, "connect_publisher", MagicMock(return_value=publisher))
    return publisher


class TestRun:

    def test_config_error_exits_non_zero(self, env, capsys):
        env.setenv("MQTT_URL", "http://broker")

        assert cli.run() == 1
        assert "failed to load lora configuration" in capsys.readouterr().err

    def test_connect_error_exits_non_zero(self, env, fake_server):
        env.setattr(cli, "connect_publisher", MagicMock(side_effect=MQTTConnectError("refused")))

        assert cli.run() == 1
        fake_server.run.assert_not_called()

    def test_clean_run_closes_publisher(self, fake_server, fake_publisher):
        assert cli.run() == 0

        fake_server.run.assert_called_once()
        fake_publisher.close.assert_called_once()

    def test_server_that_never_started(self, fake_server, fake_publisher):
        fake_server.started = False

        assert cli.run() == 1
        fake_publisher.close.assert_called_once()

    def test_server_error_still_closes_publisher(self, fake_server, fake_publisher):
        fake_server.run.side_effect = OSError("address already in use")

        assert cli.run() == 1
        fake_publisher.close.assert_called_once()

    def test_uvicorn_config(self, env, fake_server, fake_publisher):
        env.setenv("LORA_HTTP_PORT", "9090")
        config_cls = MagicMock()
        env.setattr(cli.uvicorn, "Config", config_cls)

        cli.run()

        kwargs = config_cls.call_args.kwargs
        assert kwargs["port"] == 9090
        assert kwargs["timeout_graceful_shutdown"] == 5

    @pytest.mark.parametrize(
        "raw, expected",
        [("2.5s", 3), ("250ms", 1), ("4s", 4)],
    )
    def test_fractional_timeouts_round_up(self, env, fake_server, fake_publisher, raw, expected):
        env.setenv("LORA_HTTP_SHUTDOWN_TIMEOUT", raw)
        env.setenv("LORA_HTTP_READ_HEADER_TIMEOUT", raw)
        config_cls = MagicMock()
        env.setattr(cli.uvicorn, "Config", config_cls)

        cli.run()

        kwargs = config_cls.call_args.kwargs
        assert kwargs["timeout_graceful_shutdown"] == expected
        assert kwargs["timeout_keep_alive"] == expected

    def test_build_info_defaults(self, env):
        for name in ("LORA_VERSION", "LORA_COMMIT", "LORA_BUILD_DATE"):
            env.delenv(name, raising=False)

        assert cli.build_info() == {"version": "dev", "commit": "none", "build_date": "unknown"}
