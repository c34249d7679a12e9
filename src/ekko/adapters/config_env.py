"""Env configuration adapter producing structured BridgeTimings."""

from __future__ import annotations

from ..config import config as env_config
from ..core.config_model import BridgeTimings


def _seconds(milliseconds: int) -> float:
    return max(milliseconds, 0) / 1000.0


def load_bridge_timings() -> BridgeTimings:
    return BridgeTimings(
        settle_delay=_seconds(env_config.SETTLE_DELAY_MS),
        debounce=_seconds(env_config.DEBOUNCE_MS),
        retry_delay=_seconds(env_config.RETRY_DELAY_MS),
        retry_max_delay=_seconds(env_config.RETRY_MAX_DELAY_MS),
        retry_max_attempts=max(env_config.RETRY_MAX_ATTEMPTS, 1),
        channel_timeout=_seconds(env_config.CHANNEL_TIMEOUT_MS),
    )
