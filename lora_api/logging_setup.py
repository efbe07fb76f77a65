from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def resolve_level(name: str) -> int:
    try:
        return _LEVELS[name.strip().lower()]
    except KeyError:
        raise ValueError(f"invalid log level: {name}") from None


def setup_logging(level: str = "info") -> None:
    logging.basicConfig(
        level=resolve_level(level),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )
