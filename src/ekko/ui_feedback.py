"""Desktop notifications for Ekko status messages"""

import logging
import subprocess

logger = logging.getLogger(__name__)


def notify(title: str, message: str, timeout: int = 2) -> bool:
    """Show a desktop notification; returns False when notify-send is unavailable."""
    try:
        subprocess.run(
            ["notify-send", "-t", str(timeout * 1000), title, message],
            timeout=2,
            capture_output=True,
        )
        return True
    except (FileNotFoundError, subprocess.TimeoutExpired, OSError) as e:
        logger.debug("Notification not shown: %s", e)
        return False
