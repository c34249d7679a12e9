"""Core configuration model (structured view)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BridgeTimings:
    """Delays and bounds for the direct-insert bridge, in seconds."""

    settle_delay: float = 0.15
    debounce: float = 0.15
    retry_delay: float = 0.25
    retry_max_delay: float = 2.0
    retry_max_attempts: int = 8
    channel_timeout: float = 2.0

    def retry_backoff(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based), doubling up to the ceiling."""
        delay = self.retry_delay * (2 ** max(attempt - 1, 0))
        return min(delay, self.retry_max_delay)


IMMEDIATE = BridgeTimings(
    settle_delay=0.0,
    debounce=0.0,
    retry_delay=0.0,
    retry_max_delay=0.0,
    retry_max_attempts=8,
    channel_timeout=1.0,
)
