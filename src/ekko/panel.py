"""Panel: the user-facing side of the bridge.

Shows the live transcript, mirrors it into the page while the bridge is
on, and runs the one-shot insert flows through ``InsertController``.
"""

from __future__ import annotations

import logging

from .channel import MessageChannel
from .core.config_model import BridgeTimings
from .core.controller import InsertController, InsertResult
from .core.ports import Clipboard, SpeechEngine, StatusFeedback
from .delivery import DeliveryRetryLoop
from .drafts import DraftResult
from .structuring import StructuringService
from .temporary_enable import TemporaryEnableCoordinator
from .transcript import LiveTranscript, TranscriptSegment

logger = logging.getLogger(__name__)


class Panel:
    def __init__(
        self,
        channel: MessageChannel,
        clipboard: Clipboard,
        ui: StatusFeedback,
        structuring: StructuringService | None = None,
        timings: BridgeTimings | None = None,
    ):
        self.transcript = LiveTranscript()
        self.bridge = TemporaryEnableCoordinator(channel, timings, on_state_change=self._on_state_change)
        self.delivery = DeliveryRetryLoop(channel, timings)
        self.controller = InsertController(self.bridge, channel, clipboard, ui, structuring=structuring)
        self._ui = ui

    @property
    def direct_insert_enabled(self) -> bool:
        return self.bridge.enabled

    async def open(self) -> None:
        """Start listening for bridge broadcasts and read the current flag."""
        self.bridge.attach()
        await self.bridge.refresh()

    def close(self) -> None:
        self.bridge.detach()
        self.delivery.close()
        self.controller.cancel()

    async def set_direct_insert(self, enabled: bool) -> None:
        await self.bridge.set_enabled(enabled)

    def _on_state_change(self, enabled: bool) -> None:
        logger.debug("Direct insert indicator: %s", "on" if enabled else "off")

    def on_segment(self, segment: TranscriptSegment) -> str:
        previous = self.transcript.display
        display = self.transcript.feed(segment)
        if display != previous:
            self.delivery.push(display)
        return display

    async def consume(self, engine: SpeechEngine) -> str:
        """Feed every segment of ``engine`` into the transcript; returns the final text."""
        async for segment in engine.segments():
            self.on_segment(segment)
        await self.delivery.drain()
        return self.transcript.final

    async def insert_transcript(self, already_rewritten: bool = False) -> InsertResult:
        return await self.controller.insert_transcript(self.transcript.display, already_rewritten)

    async def deliver_compose(self, draft: DraftResult | None) -> InsertResult:
        return await self.controller.deliver_compose(draft)
