"""Backoff and secret-cleanup helpers."""

from __future__ import annotations

import random
from typing import Any, Callable, List, Optional

from dap_client.config.models import JitterMode, RetryConfig


def backoff_delay(attempt: int, config: RetryConfig, rng: Optional[random.Random] = None) -> float:
    """
    Delay before retry number ``attempt`` (1 = first retry).

    The ceiling grows as base_delay * multiplier ** (attempt - 1) and is capped at
    max_delay; jitter then picks a point below the ceiling.
    """
    if attempt < 1:
        raise ValueError("attempt must be >= 1")
    rng = rng or random.Random()
    ceiling = min(config.max_delay, config.base_delay * config.multiplier ** (attempt - 1))
    if config.jitter == JitterMode.FULL:
        return rng.uniform(0, ceiling)
    if config.jitter == JitterMode.EQUAL:
        half = ceiling / 2
        return half + rng.uniform(0, half)
    return ceiling


def wipe(buffer: bytearray) -> None:
    buffer[:] = b"\x00" * len(buffer)


class SecretScope:
    """
    Owns report-scoped secret material for one submission attempt.

    Buffers registered here are zeroed, and callbacks run in LIFO order, when the
    scope exits, whether it exits normally, by exception or by cancellation.
    """

    def __init__(self) -> None:
        self._callbacks: List[Callable[[], None]] = []
        self.closed = False

    def register(self, cb: Callable[[], None]) -> None:
        self._callbacks.append(cb)

    def track(self, buffer: bytearray) -> bytearray:
        self.register(lambda: wipe(buffer))
        return buffer

    def close(self) -> None:
        while self._callbacks:
            cb = self._callbacks.pop()
            cb()
        self.closed = True

    def __enter__(self) -> "SecretScope":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
