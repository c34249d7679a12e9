"""Long-lived coordinator owning the direct-insert bridge state.

Single source of truth for ``enabled``. Agents and panels hold caches of
it that are refreshed by the broadcast that follows every toggle, or by an
explicit ``query``.
"""

from __future__ import annotations

import asyncio
import logging

from .channel import MessageChannel
from .core.ports import TranscriptStore
from .core.state_machine import BridgeEvent, BridgeStateMachine
from .errors import ChannelError, EkkoError, InsertionError, NoActiveTabError
from .messages import (
    Message,
    MessageType,
    Origin,
    Response,
    Sender,
    toggle_message,
    transcript_update_message,
)
from .page import PageHost
from .storage import CAPTURED

logger = logging.getLogger(__name__)


class BridgeStateStore:
    """Owns ``enabled`` plus the per-tab preferred frame for deliveries."""

    def __init__(self, channel: MessageChannel, host: PageHost, store: TranscriptStore):
        self._channel = channel
        self._host = host
        self._store = store
        self._machine = BridgeStateMachine()
        self._toggle_lock = asyncio.Lock()
        self.frame_affinity: dict[int, int] = {}
        self._last_seq: dict[int | None, int] = {}

    def start(self) -> None:
        self._channel.serve_coordinator(self.handle)

    def stop(self) -> None:
        self._channel.stop_coordinator()

    @property
    def enabled(self) -> bool:
        return self._machine.enabled

    def query(self) -> bool:
        return self._machine.enabled

    def record_focus(self, tab_id: int, frame_id: int) -> None:
        self.frame_affinity[tab_id] = frame_id

    def _active_tab(self) -> int:
        tab_id = self._host.active_tab_id
        if tab_id is None:
            raise NoActiveTabError("No active tab for direct insert bridge")
        return tab_id

    async def toggle(self, enabled: bool) -> None:
        """Enable or disable the bridge for the active tab and broadcast it.

        Frames that fail to install the agent or to receive the broadcast are
        skipped; the toggle itself still succeeds.
        """
        async with self._toggle_lock:
            tab_id = self._active_tab()
            # Unregister first so a repeated enable never installs twice.
            self._host.unregister_agent_script()
            if enabled:
                self._host.register_agent_script()
                self._machine.transition(BridgeEvent.ENABLE)
                installed = await self._host.inject_all(tab_id)
                logger.debug("Bridge enabled for tab %s (%d frame(s) with agent)", tab_id, installed)
            else:
                self.frame_affinity.pop(tab_id, None)
                self._machine.transition(BridgeEvent.DISABLE)
                logger.debug("Bridge disabled for tab %s", tab_id)
            await self._broadcast(tab_id, toggle_message(enabled))

    async def _broadcast(self, tab_id: int, message: Message) -> None:
        for frame_id in self._host.frame_ids(tab_id):
            try:
                await self._channel.send_to_tab(tab_id, message, frame_id=frame_id)
            except ChannelError as e:
                logger.debug("Frame %s of tab %s missed %s: %s", frame_id, tab_id, message.type.value, e)
        self._channel.notify(message)

    async def handle_transcript_update(
        self, transcript: str, origin: str, seq: int | None = None, tab_id: int | None = None
    ) -> dict:
        target_tab = tab_id if tab_id is not None else self._host.active_tab_id
        if seq is not None:
            # A panel update older than one already seen for the tab was superseded.
            last = self._last_seq.get(target_tab)
            if last is not None and seq < last:
                logger.debug("Dropping stale transcript update %d for tab %s (last %d)", seq, target_tab, last)
                return {"delivered": False, "stale": True}
            self._last_seq[target_tab] = seq

        session = self._store.upsert_transcript(transcript, actions=[CAPTURED])
        result = {"delivered": False, "session": session.to_dict()}

        # Updates that came from the page are recorded, never echoed back.
        if not self.enabled or origin != Origin.PANEL.value:
            return result
        if target_tab is None:
            return result

        message = transcript_update_message(session.transcript, Origin.PANEL)
        try:
            response = await self._channel.send_to_tab(
                target_tab, message, frame_id=self.frame_affinity.get(target_tab)
            )
        except ChannelError as e:
            logger.debug("Transcript not delivered to tab %s: %s", target_tab, e)
            return result

        result["delivered"] = response is not None and response.delivered
        return result

    async def apply_insert(self, payload: dict, tab_id: int | None = None) -> None:
        """Apply text or a draft in the page, reinstalling the agent once on failure."""
        if tab_id is None:
            tab_id = self._active_tab()
        message = Message(MessageType.APPLY, payload)

        try:
            response = await self._send_apply(tab_id, message)
        except ChannelError as e:
            logger.debug("Apply failed for tab %s, reinstalling agent: %s", tab_id, e)
            await self._host.inject_all(tab_id)
            response = await self._send_apply(tab_id, message)

        if response is None:
            raise InsertionError("No frame answered the insert request.")
        if not response.ok:
            raise InsertionError(response.error or "Unable to insert into page.")

    async def _send_apply(self, tab_id: int, message: Message) -> Response | None:
        return await self._channel.send_to_tab(tab_id, message, frame_id=self.frame_affinity.get(tab_id))

    async def handle(self, message: Message, sender: Sender) -> Response:
        try:
            return await self._dispatch(message, sender)
        except EkkoError as e:
            logger.warning("Coordinator could not handle %s: %s", message.type.value, e)
            return Response.failure(str(e))
        except Exception as e:
            logger.exception("Ekko coordinator error")
            return Response.failure(str(e) or "Unknown coordinator error")

    async def _dispatch(self, message: Message, sender: Sender) -> Response:
        payload = message.payload

        if message.type is MessageType.TOGGLE:
            await self.toggle(bool(payload.get("enabled")))
            return Response.success()

        if message.type is MessageType.QUERY:
            return Response.success({"enabled": self.query()})

        if message.type is MessageType.FOCUS:
            if sender.tab_id is not None and sender.frame_id is not None:
                self.record_focus(sender.tab_id, sender.frame_id)
            return Response.success()

        if message.type is MessageType.TRANSCRIPT_UPDATE:
            result = await self.handle_transcript_update(
                payload.get("transcript", ""),
                payload.get("origin", Origin.PANEL.value),
                seq=payload.get("seq"),
                tab_id=payload.get("tab_id"),
            )
            return Response.success(result)

        if message.type is MessageType.AI_SUMMARIZE:
            session = self._store.record_summary(
                payload.get("transcript", ""), payload.get("summary", ""), session_id=payload.get("session_id")
            )
            return Response.success(session.to_dict())

        if message.type is MessageType.AI_REWRITE:
            session = self._store.record_rewrite(
                payload.get("transcript", ""),
                payload.get("rewrite", ""),
                payload.get("preset", ""),
                session_id=payload.get("session_id"),
            )
            return Response.success(session.to_dict())

        if message.type is MessageType.AI_COMPOSE:
            session = self._store.record_composition(
                payload.get("output", ""),
                payload.get("preset", ""),
                instructions=payload.get("instructions"),
                session_id=payload.get("session_id"),
            )
            return Response.success(session.to_dict())

        if message.type in (MessageType.APPLY, MessageType.WIDGET_INSERT):
            if message.type is MessageType.WIDGET_INSERT and sender.tab_id is None:
                return Response.failure("No active tab found for insert request.")
            if not isinstance(payload.get("text"), str) and not isinstance(payload.get("draft"), dict):
                return Response.failure("Missing text payload.")
            await self.apply_insert(payload, tab_id=sender.tab_id)
            return Response.success()

        return Response.failure(f"Unhandled message type: {message.type.value}")
