"""Métricas Prometheus del adaptador."""

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

UPLINKS_TOTAL = Counter(
    "lora_uplinks_total",
    "Uplinks received by the adapter",
    ["status"],  # forwarded, rejected, too_large, publish_failed
)

PUBLISH_SECONDS = Histogram(
    "lora_mqtt_publish_seconds",
    "Time spent waiting for MQTT publish completion",
)


def render_latest() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
