"""Arbitraje de timeout entre el deadline del llamador y el timeout configurado."""

from __future__ import annotations

import time
from typing import Optional


def effective_timeout(
    configured: Optional[float],
    deadline: Optional[float],
    now: Optional[float] = None,
) -> Optional[float]:
    """Retorna la espera efectiva en segundos.

    ``min(configured, deadline - now)``; cualquiera de los dos puede ser
    None. None significa sin límite. Nunca retorna un valor negativo.

    Args:
        configured: timeout configurado en segundos
        deadline: instante absoluto en reloj ``time.monotonic()``
        now: instante actual (por defecto ``time.monotonic()``)
    """
    remaining: Optional[float] = None
    if deadline is not None:
        if now is None:
            now = time.monotonic()
        remaining = max(deadline - now, 0.0)

    if configured is None:
        return remaining
    if remaining is None:
        return configured
    return min(configured, remaining)


def deadline_expired(deadline: Optional[float], now: Optional[float] = None) -> bool:
    if deadline is None:
        return False
    if now is None:
        now = time.monotonic()
    return now >= deadline
