"""Configuration for Ekko"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes", "on")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


class Config:
    """Environment-backed settings"""

    DEBUG = _env_bool("EKKO_DEBUG")
    LOG_LEVEL = os.getenv("EKKO_LOG_LEVEL", "DEBUG" if DEBUG else "INFO").upper()

    # Temporary enable: wait after installing the agent before running the task
    SETTLE_DELAY_MS = _env_int("EKKO_SETTLE_DELAY_MS", 150)

    # Live transcript delivery
    DEBOUNCE_MS = _env_int("EKKO_DEBOUNCE_MS", 150)
    RETRY_DELAY_MS = _env_int("EKKO_RETRY_DELAY_MS", 250)
    RETRY_MAX_DELAY_MS = _env_int("EKKO_RETRY_MAX_DELAY_MS", 2000)
    RETRY_MAX_ATTEMPTS = _env_int("EKKO_RETRY_MAX_ATTEMPTS", 8)

    CHANNEL_TIMEOUT_MS = _env_int("EKKO_CHANNEL_TIMEOUT_MS", 2000)

    # Session history; in-memory only when unset
    HISTORY_PATH = Path(os.environ["EKKO_HISTORY_PATH"]) if os.getenv("EKKO_HISTORY_PATH") else None


config = Config()
