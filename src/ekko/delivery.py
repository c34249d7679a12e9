"""Live transcript delivery from the panel to the page.

Every transcript change is debounced, then pushed to the coordinator as a
``transcriptUpdate``. Only an explicit ``delivered: true`` counts as an
acknowledgment; anything else (agent not installed yet, wrong frame,
surface gone, channel failure) is retried after a bounded backoff.

A newer text for the same tab supersedes the attempt in flight: its task
is cancelled and it never sends again, so stale text cannot land after
fresh text. Each attempt also carries a sequence number so the coordinator
drops an older update that reaches it after a newer one.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field

from .channel import MessageChannel
from .core.config_model import BridgeTimings
from .errors import ChannelError
from .messages import Origin, Sender, transcript_update_message

logger = logging.getLogger(__name__)

# Shared by every panel in the process so the coordinator can order their updates.
_sequence = itertools.count(1)


@dataclass(eq=False)
class DeliveryAttempt:
    text: str
    tab_id: int | None = None
    seq: int = 0
    superseded_by: "DeliveryAttempt | None" = None
    sends: int = 0
    delivered: bool = False
    task: asyncio.Task | None = field(default=None, repr=False)

    @property
    def superseded(self) -> bool:
        return self.superseded_by is not None

    @property
    def done(self) -> bool:
        return self.task is None or self.task.done()


class DeliveryRetryLoop:
    """At most one live attempt per tab; the newest text always wins."""

    def __init__(self, channel: MessageChannel, timings: BridgeTimings | None = None, sender: Sender | None = None):
        self._channel = channel
        self._timings = timings or BridgeTimings()
        self._sender = sender or Sender()
        self._live: dict[int | None, DeliveryAttempt] = {}
        self._last_synced: dict[int | None, str] = {}
        self.last_session: dict | None = None

    def live_attempt(self, tab_id: int | None = None) -> DeliveryAttempt | None:
        return self._live.get(tab_id)

    def push(self, text: str, tab_id: int | None = None) -> DeliveryAttempt:
        """Schedule delivery of ``text``, superseding any attempt for the tab."""
        attempt = DeliveryAttempt(text=text, tab_id=tab_id, seq=next(_sequence))
        previous = self._live.get(tab_id)
        if previous is not None:
            previous.superseded_by = attempt
            if previous.task is not None:
                previous.task.cancel()
        self._live[tab_id] = attempt
        attempt.task = asyncio.ensure_future(self._run(attempt))
        return attempt

    async def _run(self, attempt: DeliveryAttempt) -> None:
        await asyncio.sleep(self._timings.debounce)
        if attempt.superseded:
            return
        if self._last_synced.get(attempt.tab_id) == attempt.text:
            attempt.delivered = True
            return

        while not attempt.superseded:
            attempt.sends += 1
            try:
                response = await self._channel.send_to_coordinator(
                    transcript_update_message(attempt.text, Origin.PANEL, seq=attempt.seq, tab_id=attempt.tab_id),
                    sender=self._sender,
                )
            except ChannelError as e:
                logger.debug("Transcript sync failed (attempt %d): %s", attempt.sends, e)
                response = None

            if attempt.superseded:
                return
            if response is not None and response.ok and isinstance(response.data, dict):
                self.last_session = response.data.get("session") or self.last_session
            if response is not None and response.delivered:
                attempt.delivered = True
                self._last_synced[attempt.tab_id] = attempt.text
                return
            if attempt.sends >= self._timings.retry_max_attempts:
                logger.debug("Giving up on transcript delivery after %d attempts", attempt.sends)
                return
            await asyncio.sleep(self._timings.retry_backoff(attempt.sends))

    async def drain(self, tab_id: int | None = None) -> DeliveryAttempt | None:
        """Wait for the live attempt of ``tab_id`` to finish."""
        attempt = self._live.get(tab_id)
        if attempt is None or attempt.task is None:
            return attempt
        try:
            await asyncio.shield(attempt.task)
        except asyncio.CancelledError:
            if not attempt.task.cancelled():
                raise
        return attempt

    def cancel(self, tab_id: int | None = None) -> None:
        attempt = self._live.pop(tab_id, None)
        if attempt is not None and attempt.task is not None:
            attempt.task.cancel()

    def close(self) -> None:
        for tab_id in list(self._live):
            self.cancel(tab_id)
