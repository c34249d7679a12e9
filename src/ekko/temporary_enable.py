"""Temporary enabling of the bridge around one-shot deliveries (panel side).

A panel that inserts a draft while the bridge is off switches it on, runs
the insert, and switches it off again. Overlapping inserts share one
enable/disable pair through a reference count (``depth``); only the last
caller out disables. While the count is held, state broadcasts from the
coordinator are buffered so the panel's indicator never flickers, and the
latest one is applied once when the count drops back to zero.

``depth`` belongs to one panel instance. Two panels keep independent
counts; the coordinator's flag is the only cross-panel truth.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from .channel import MessageChannel
from .core.config_model import BridgeTimings
from .errors import ChannelError, EkkoError, ToggleError
from .messages import Message, MessageType, Sender, query_message, toggle_message

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATE_MESSAGES = (MessageType.TOGGLE, MessageType.INITIALIZED)


class TemporaryEnableCoordinator:
    def __init__(
        self,
        channel: MessageChannel,
        timings: BridgeTimings | None = None,
        on_state_change: Callable[[bool], None] | None = None,
        sender: Sender | None = None,
    ):
        self._channel = channel
        self._timings = timings or BridgeTimings()
        self._on_state_change = on_state_change
        self._sender = sender or Sender()

        self.enabled = False
        self.depth = 0
        self.pending_notification: Message | None = None
        self._needs_refresh = False
        self._auto_enabled = False
        self._enabling: asyncio.Future | None = None
        self._disabling: asyncio.Future | None = None

    def attach(self) -> None:
        self._channel.add_listener(self.handle_state_notification)

    def detach(self) -> None:
        self._channel.remove_listener(self.handle_state_notification)

    @property
    def buffering(self) -> bool:
        return self.depth > 0 or self._disabling is not None

    def handle_state_notification(self, message: Message) -> None:
        if message.type not in STATE_MESSAGES:
            return
        if self.buffering:
            self.pending_notification = message
        else:
            self._set_enabled(bool(message.payload.get("enabled")))

    def _set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled
        if self._on_state_change is not None:
            self._on_state_change(enabled)

    async def refresh(self) -> bool:
        """Re-read the coordinator's flag into the local indicator."""
        try:
            response = await self._channel.send_to_coordinator(query_message(), sender=self._sender)
        except ChannelError as e:
            logger.debug("Unable to query direct insert state: %s", e)
            return self.enabled
        if response.ok and isinstance(response.data, dict):
            self._set_enabled(bool(response.data.get("enabled")))
        return self.enabled

    async def _send_toggle(self, enabled: bool) -> None:
        response = await self._channel.send_to_coordinator(toggle_message(enabled), sender=self._sender)
        if not response.ok:
            raise ToggleError(response.error or "Unable to toggle Direct Insert Mode.")

    async def set_enabled(self, enabled: bool) -> None:
        """User-driven toggle; updates the indicator unless a delivery holds the bridge."""
        await self._send_toggle(enabled)
        if not self.buffering:
            self._set_enabled(enabled)
            return
        # The user now owns the state; the last delivery out must not undo it.
        self._auto_enabled = False
        self.pending_notification = toggle_message(enabled)

    async def run_with_bridge(self, task: Callable[[], Awaitable[T]]) -> T:
        """Run ``task`` with the bridge on, restoring the previous state afterwards."""
        if self.enabled:
            return await task()

        self.depth += 1
        try:
            await self._ensure_enabled()
            return await task()
        finally:
            self.depth -= 1
            if self.depth == 0:
                await self._restore()

    async def _ensure_enabled(self) -> None:
        if self._enabling is None:
            if self._disabling is not None:
                await asyncio.shield(self._disabling)
            self._enabling = asyncio.ensure_future(self._enable_temporarily())
        await asyncio.shield(self._enabling)

    async def _enable_temporarily(self) -> None:
        await self._send_toggle(True)
        self._auto_enabled = True
        # Let the freshly installed agent initialise.
        await asyncio.sleep(self._timings.settle_delay)

    async def _restore(self) -> None:
        self._enabling = None
        if self._auto_enabled:
            self._auto_enabled = False
            self._disabling = asyncio.ensure_future(self._rollback())
            try:
                await asyncio.shield(self._disabling)
            finally:
                self._disabling = None
        if self.depth == 0:
            await self._apply_pending()

    async def _rollback(self) -> None:
        try:
            await self._send_toggle(False)
        except EkkoError as e:
            logger.warning("Unable to disable direct insert bridge after temporary use: %s", e)
            self._needs_refresh = True

    async def _apply_pending(self) -> None:
        if self._needs_refresh:
            self._needs_refresh = False
            self.pending_notification = None
            await self.refresh()
            return
        if self.pending_notification is not None:
            message, self.pending_notification = self.pending_notification, None
            self._set_enabled(bool(message.payload.get("enabled")))
