"""Wiring of one Ekko runtime: channel, page host, coordinator and a panel."""

from __future__ import annotations

import logging

from .adapters.clipboard import ClipboardAdapter
from .adapters.config_env import load_bridge_timings
from .adapters.ui_feedback import LogStatusFeedback
from .channel import MessageChannel
from .config import config
from .coordinator import BridgeStateStore
from .core.config_model import BridgeTimings
from .core.ports import Clipboard, StatusFeedback, StructuringModel
from .page import PageHost
from .panel import Panel
from .storage import SessionStore
from .structuring import StructuringService

logger = logging.getLogger(__name__)


class EkkoRuntime:
    """Everything that shares the event loop, built from configuration."""

    def __init__(
        self,
        timings: BridgeTimings | None = None,
        store: SessionStore | None = None,
        clipboard: Clipboard | None = None,
        ui: StatusFeedback | None = None,
        model: StructuringModel | None = None,
    ):
        self.timings = timings or load_bridge_timings()
        self.channel = MessageChannel(timeout=self.timings.channel_timeout)
        self.host = PageHost(self.channel)
        self.store = store if store is not None else SessionStore(config.HISTORY_PATH)
        self.coordinator = BridgeStateStore(self.channel, self.host, self.store)
        self.ui = ui or LogStatusFeedback()
        self.panel = Panel(
            self.channel,
            clipboard or ClipboardAdapter(),
            self.ui,
            structuring=StructuringService(model),
            timings=self.timings,
        )

    async def start(self) -> None:
        self.coordinator.start()
        await self.panel.open()
        logger.debug("Ekko runtime started (direct insert %s)", "on" if self.panel.direct_insert_enabled else "off")

    async def stop(self) -> None:
        self.panel.close()
        for tab_id in list(self.host.tabs):
            self.host.close_tab(tab_id)
        self.coordinator.stop()
