"""Status feedback adapters."""

from __future__ import annotations

import logging

from ..ui_feedback import notify

logger = logging.getLogger(__name__)


class LogStatusFeedback:
    """Records every status line and logs it."""

    def __init__(self):
        self.messages: list[str] = []

    def status(self, message: str) -> None:
        self.messages.append(message)
        logger.info("%s", message)


class NotifyStatusFeedback(LogStatusFeedback):
    """Also raises a desktop notification for each status."""

    def status(self, message: str) -> None:
        super().status(message)
        notify("Ekko", message)
