"""Tests de configuración y URLs de broker."""

import pytest

from lora_api.config import Settings, load_settings, parse_duration, sanitize_path
from lora_api.errors import ConfigError
from lora_api.mqtt.broker_url import parse_broker_url

ENV_VARS = (
    "LORA_HTTP_HOST",
    "LORA_HTTP_PORT",
    "LORA_HTTP_UPLINK_PATH",
    "LORA_HTTP_READ_HEADER_TIMEOUT",
    "LORA_HTTP_SHUTDOWN_TIMEOUT",
    "LORA_HTTP_REQUEST_TIMEOUT",
    "LORA_HTTP_MAX_BODY_SIZE",
    "MQTT_URL",
    "MQTT_USERNAME",
    "MQTT_PASSWORD",
    "MQTT_CLIENT_ID",
    "MQTT_BASE_TOPIC",
    "MQTT_PUBLISH_TIMEOUT",
    "MQTT_CONNECT_TIMEOUT",
    "LOG_LEVEL",
    "LORA_ENV_FILE",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    # setenv primero para que monkeypatch restaure también lo que cargue load_dotenv
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.setenv("LORA_ENV_FILE", str(tmp_path / "missing.env"))
    return monkeypatch


def _valid(**overrides) -> Settings:
    values = {"mqtt_url": "mqtt://broker:1883"}
    values.update(overrides)
    return Settings(**values)


# =============================================================================
# CARGA DESDE ENTORNO
# =============================================================================

class TestLoadSettings:

    def test_defaults(self, clean_env):
        clean_env.setenv("MQTT_URL", "mqtt://broker")

        cfg = load_settings()

        assert cfg.http_host == "0.0.0.0"
        assert cfg.port == 8080
        assert cfg.uplink_path == "/uplink"
        assert cfg.max_body_size == 1048576
        assert cfg.mqtt_base_topic == "lora"
        assert cfg.mqtt_publish_timeout == 5.0
        assert cfg.read_header_timeout == 5.0
        assert cfg.shutdown_timeout == 5.0
        assert cfg.request_timeout == 0.0
        assert cfg.log_level == "info"

    def test_overrides(self, clean_env):
        clean_env.setenv("MQTT_URL", "mqtts://broker.example.com")
        clean_env.setenv("LORA_HTTP_PORT", "9000")
        clean_env.setenv("LORA_HTTP_UPLINK_PATH", "hooks/chirpstack/")
        clean_env.setenv("MQTT_BASE_TOPIC", "/tenants/acme/")
        clean_env.setenv("MQTT_PUBLISH_TIMEOUT", "250ms")
        clean_env.setenv("LORA_HTTP_MAX_BODY_SIZE", "2048")

        cfg = load_settings()

        assert cfg.port == 9000
        assert cfg.uplink_path == "/hooks/chirpstack"
        assert cfg.mqtt_base_topic == "tenants/acme"
        assert cfg.mqtt_publish_timeout == pytest.approx(0.25)
        assert cfg.max_body_size == 2048
        assert cfg.broker.tls is True

    def test_env_file_does_not_override_environment(self, clean_env, tmp_path):
        env_file = tmp_path / "lora.env"
        env_file.write_text("MQTT_URL=mqtt://from-file\nMQTT_BASE_TOPIC=file-topic\n")
        clean_env.setenv("MQTT_BASE_TOPIC", "env-topic")

        cfg = load_settings(str(env_file))

        assert cfg.mqtt_url == "mqtt://from-file"
        assert cfg.mqtt_base_topic == "env-topic"

    def test_missing_broker_url(self, clean_env):
        with pytest.raises(ConfigError, match="must not be empty"):
            load_settings()

    def test_bad_duration(self, clean_env):
        clean_env.setenv("MQTT_URL", "mqtt://broker")
        clean_env.setenv("MQTT_PUBLISH_TIMEOUT", "soon")

        with pytest.raises(ConfigError, match="MQTT_PUBLISH_TIMEOUT"):
            load_settings()

    def test_non_numeric_body_size(self, clean_env):
        clean_env.setenv("MQTT_URL", "mqtt://broker")
        clean_env.setenv("LORA_HTTP_MAX_BODY_SIZE", "1MB")

        with pytest.raises(ConfigError, match="LORA_HTTP_MAX_BODY_SIZE"):
            load_settings()


# =============================================================================
# VALIDACIÓN
# =============================================================================

class TestValidation:

    def test_blank_port_falls_back_to_default(self):
        assert _valid(http_port="  ").validated().http_port == "8080"

    def test_non_numeric_port(self):
        with pytest.raises(ConfigError, match="invalid http port"):
            _valid(http_port="http").validated()

    @pytest.mark.parametrize("size", [0, -1])
    def test_non_positive_body_size(self, size):
        with pytest.raises(ConfigError, match="invalid max body size"):
            _valid(max_body_size=size).validated()

    def test_empty_base_topic(self):
        with pytest.raises(ConfigError, match="base topic"):
            _valid(mqtt_base_topic="///").validated()

    @pytest.mark.parametrize("timeout", [0, -1.0])
    def test_non_positive_publish_timeout(self, timeout):
        with pytest.raises(ConfigError, match="publish timeout"):
            _valid(mqtt_publish_timeout=timeout).validated()

    def test_negative_request_timeout(self):
        with pytest.raises(ConfigError, match="request timeout"):
            _valid(request_timeout=-1).validated()

    def test_host_with_spaces(self):
        with pytest.raises(ConfigError, match="invalid http host"):
            _valid(http_host="my host").validated()

    @pytest.mark.parametrize("host", ["localhost", "127.0.0.1", "::", "adapter.internal", ""])
    def test_accepted_hosts(self, host):
        assert _valid(http_host=host).validated().http_host == host

    def test_invalid_log_level(self):
        with pytest.raises(ConfigError, match="invalid log level"):
            _valid(log_level="verbose").validated()

    def test_disallowed_scheme(self):
        with pytest.raises(ConfigError, match="unsupported mqtt scheme"):
            _valid(mqtt_url="http://broker").validated()

    def test_validated_returns_new_instance(self):
        raw = _valid(uplink_path="uplink/")
        cfg = raw.validated()

        assert raw.uplink_path == "uplink/"
        assert cfg.uplink_path == "/uplink"


class TestHelpers:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("", "/uplink"),
            ("uplink", "/uplink"),
            ("/uplink/", "/uplink"),
            ("/a/b//", "/a/b"),
            ("/", "/"),
        ],
    )
    def test_sanitize_path(self, raw, expected):
        assert sanitize_path(raw) == expected

    @pytest.mark.parametrize(
        "raw, seconds",
        [
            ("5s", 5.0),
            ("250ms", 0.25),
            ("1m30s", 90.0),
            ("1h", 3600.0),
            ("2.5", 2.5),
            ("0", 0.0),
            ("-1s", -1.0),
        ],
    )
    def test_parse_duration(self, raw, seconds):
        assert parse_duration(raw) == pytest.approx(seconds)

    @pytest.mark.parametrize("raw", ["", "s", "5x", "5s garbage", "ms5"])
    def test_parse_duration_rejects(self, raw):
        with pytest.raises(ConfigError):
            parse_duration(raw)


# =============================================================================
# URL DEL BROKER
# =============================================================================

class TestBrokerURL:

    @pytest.mark.parametrize(
        "url, transport, tls, port",
        [
            ("mqtt://broker", "tcp", False, 1883),
            ("tcp://broker:1884", "tcp", False, 1884),
            ("mqtts://broker", "tcp", True, 8883),
            ("ssl://broker", "tcp", True, 8883),
            ("tls://broker:9883", "tcp", True, 9883),
            ("ws://broker", "websockets", False, 80),
            ("wss://broker:8084", "websockets", True, 8084),
        ],
    )
    def test_scheme_mapping(self, url, transport, tls, port):
        endpoint = parse_broker_url(url)

        assert endpoint.host == "broker"
        assert endpoint.transport == transport
        assert endpoint.tls is tls
        assert endpoint.port == port

    def test_scheme_is_case_insensitive(self):
        assert parse_broker_url("MQTT://broker").scheme == "mqtt"

    def test_websocket_path(self):
        assert parse_broker_url("ws://broker/ws").path == "/ws"
        assert parse_broker_url("ws://broker").path == "/mqtt"

    @pytest.mark.parametrize(
        "url, message",
        [
            ("", "must not be empty"),
            ("   ", "must not be empty"),
            ("amqp://broker", "unsupported mqtt scheme"),
            ("broker:1883", "unsupported mqtt scheme"),
            ("mqtt://", "missing host"),
            ("mqtt://broker:notaport", "invalid mqtt URL"),
        ],
    )
    def test_rejected(self, url, message):
        with pytest.raises(ConfigError, match=message):
            parse_broker_url(url)
