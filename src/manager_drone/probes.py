"""
Low-level probing primitives used by the status checks.

- ``tcp_reachable``: bare TCP connect with a short timeout, to tell "host/port
  down" apart from "service up but unhealthy".
- ``warmup_retry``: bounded retry with a LINEAR backoff schedule for backends
  that are transiently unready right after a restart.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PROBE_TIMEOUT = 0.8

Sleep = Callable[[float], Awaitable[None]]
TcpProbe = Callable[[str, int, float], Awaitable[bool]]


async def tcp_reachable(host: str, port: int, timeout: float = DEFAULT_PROBE_TIMEOUT) -> bool:
    """Return True if a TCP connection to host:port opens within ``timeout`` seconds."""
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=timeout)
    except (OSError, ValueError, asyncio.TimeoutError):
        # ValueError covers hosts that cannot be IDNA-encoded.
        return False

    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return True


@dataclass
class WarmupOutcome(Generic[T]):
    """Result of a warm-up retry loop."""

    ok: bool
    attempts: int
    value: T | None = None
    last_error: BaseException | None = None
    delays: list[float] = field(default_factory=list)

    @property
    def error_message(self) -> str | None:
        if self.last_error is None:
            return None
        return str(self.last_error) or type(self.last_error).__name__


def backoff_delay(backoff: float, retry_index: int) -> float:
    """Delay before retry number ``retry_index`` (1-based): ``backoff * retry_index``."""
    return backoff * retry_index


async def warmup_retry(
    call: Callable[[], Awaitable[T]],
    *,
    retries: int,
    backoff: float,
    sleep: Sleep = asyncio.sleep,
) -> WarmupOutcome[T]:
    """
    Run ``call`` up to ``retries + 1`` times with linear backoff between attempts.

    The first attempt runs immediately; retry ``k`` waits ``backoff * k``.
    Never raises for failures of ``call``; the last error is captured instead.
    """
    if retries < 0:
        raise ValueError("retries cannot be negative")

    outcome: WarmupOutcome[T] = WarmupOutcome(ok=False, attempts=0)
    for attempt in range(retries + 1):
        if attempt > 0:
            delay = backoff_delay(backoff, attempt)
            outcome.delays.append(delay)
            await sleep(delay)

        outcome.attempts = attempt + 1
        try:
            outcome.value = await call()
        except Exception as exc:
            outcome.last_error = exc
            if attempt < retries:
                logger.debug(
                    "Warm-up attempt %d/%d failed: %s; retrying in %.2fs",
                    attempt + 1,
                    retries + 1,
                    exc,
                    backoff_delay(backoff, attempt + 1),
                )
            else:
                logger.debug("Warm-up attempt %d/%d failed: %s", attempt + 1, retries + 1, exc)
            continue

        outcome.ok = True
        outcome.last_error = None
        return outcome

    return outcome


__all__ = [
    "DEFAULT_PROBE_TIMEOUT",
    "Sleep",
    "TcpProbe",
    "tcp_reachable",
    "WarmupOutcome",
    "backoff_delay",
    "warmup_retry",
]
