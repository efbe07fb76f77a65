"""CLI entry point for the LoRa uplink adapter."""

from __future__ import annotations

import argparse
import logging
import math
import os
import sys

import uvicorn

from .config import load_settings
from .errors import ConfigError, MQTTConnectError
from .logging_setup import setup_logging
from .main import create_app
from .mqtt.publisher import connect_publisher

logger = logging.getLogger(__name__)

SERVICE_NAME = "lora"


def build_info() -> dict[str, str]:
    return {
        "version": os.getenv("LORA_VERSION", "dev"),
        "commit": os.getenv("LORA_COMMIT", "none"),
        "build_date": os.getenv("LORA_BUILD_DATE", "unknown"),
    }


def run(env_file: str | None = None) -> int:
    try:
        settings = load_settings(env_file)
    except ConfigError as e:
        print(f"failed to load {SERVICE_NAME} configuration : {e}", file=sys.stderr)
        return 1

    setup_logging(settings.log_level)
    info = build_info()
    logger.info(
        "[LORA] LoRa adapter configuration loaded version=%s commit=%s build_date=%s",
        info["version"],
        info["commit"],
        info["build_date"],
    )

    try:
        publisher = connect_publisher(settings)
    except MQTTConnectError as e:
        logger.error("[LORA] failed to connect to MQTT broker: %s", e)
        return 1

    exit_code = 0
    try:
        app = create_app(settings, publisher)
        server = uvicorn.Server(
            uvicorn.Config(
                app,
                host=settings.http_host,
                port=settings.port,
                # uvicorn no tiene timeout de lectura de headers; el más cercano
                timeout_keep_alive=max(math.ceil(settings.read_header_timeout), 1),
                timeout_graceful_shutdown=max(math.ceil(settings.shutdown_timeout), 1),
                log_config=None,
            )
        )
        logger.info("[LORA] LoRa adapter HTTP server starting addr=%s:%s", settings.http_host, settings.http_port)
        server.run()
        if not server.started:
            logger.error("[LORA] HTTP server error: server failed to start")
            exit_code = 1
    except SystemExit as e:
        logger.error("[LORA] HTTP server error: exit %s", e.code)
        exit_code = 1
    except Exception as e:
        logger.exception("[LORA] HTTP server error: %s", e)
        exit_code = 1
    finally:
        publisher.close()

    logger.info("[LORA] LoRa adapter shutdown complete")
    return exit_code


def main() -> None:
    p = argparse.ArgumentParser(description="LoRa uplink adapter (HTTP webhook -> MQTT)")
    p.add_argument("--env-file", default=None, help="optional .env file (defaults to LORA_ENV_FILE or .env)")
    args = p.parse_args()
    sys.exit(run(args.env_file))


if __name__ == "__main__":
    main()
