"""Clipboard access for Ekko - fallback when direct insertion fails

Uses xclip on Linux/X11, which works across toolkits without a GUI loop.
"""

import logging
import subprocess

from .platform_utils import IS_LINUX

logger = logging.getLogger(__name__)


def set_clipboard(text: str) -> bool:
    """Set text to the system clipboard.

    Args:
        text: Text to copy to clipboard.

    Returns:
        True if successful, False otherwise.
    """
    if not IS_LINUX or not text:
        return False

    try:
        process = subprocess.Popen(
            ["xclip", "-selection", "clipboard"],
            stdin=subprocess.PIPE,
            text=True,
        )
        process.communicate(input=text, timeout=2.0)
        return process.returncode == 0

    except FileNotFoundError:
        logger.debug("xclip not installed; clipboard fallback unavailable")
        return False
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.warning("Unable to copy to clipboard: %s", e)
        return False
