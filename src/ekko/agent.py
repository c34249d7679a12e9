"""Page-resident insertion agent, one per frame."""

from __future__ import annotations

import asyncio
import logging

from .channel import MessageChannel
from .dom import Document, Element
from .drafts import DraftResult, normalize_draft
from .errors import ChannelError
from .messages import (
    Message,
    MessageType,
    Origin,
    Response,
    Sender,
    focus_message,
    initialized_message,
    query_message,
)
from .resolver import InsertionTargetResolver

logger = logging.getLogger(__name__)

NO_TARGET_ERROR = "No editable field is focused on this page."


class InsertionAgent:
    """Applies transcripts and drafts to the editable surfaces of one frame.

    The agent keeps a local copy of the bridge flag. It is a cache: the
    coordinator's broadcast is the only thing that changes it.
    """

    def __init__(self, tab_id: int, frame_id: int, document: Document, channel: MessageChannel):
        self.tab_id = tab_id
        self.frame_id = frame_id
        self.document = document
        self.enabled = False
        self._channel = channel
        self._tasks: set[asyncio.Task] = set()
        self.resolver = InsertionTargetResolver(document, on_editable_focus=self._on_editable_focus)

    @property
    def sender(self) -> Sender:
        return Sender(tab_id=self.tab_id, frame_id=self.frame_id)

    async def install(self) -> None:
        """Start answering messages, then sync with the coordinator's flag."""
        self._channel.register_frame(self.tab_id, self.frame_id, self.handle)
        enabled = False
        try:
            response = await self._channel.send_to_coordinator(query_message(), sender=self.sender)
            if response.ok and isinstance(response.data, dict):
                enabled = bool(response.data.get("enabled"))
        except ChannelError as e:
            logger.debug("Agent %s/%s could not query bridge state: %s", self.tab_id, self.frame_id, e)
        self.set_enabled(enabled)
        self._channel.notify(initialized_message(enabled))

    def uninstall(self) -> None:
        self._channel.unregister_frame(self.tab_id, self.frame_id)
        self.set_enabled(False)
        for task in list(self._tasks):
            task.cancel()

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = bool(enabled)
        if self.enabled:
            self.resolver.attach()
        else:
            self.resolver.detach()

    async def handle(self, message: Message, sender: Sender) -> Response | None:
        if message.type is MessageType.TOGGLE:
            self.set_enabled(message.payload.get("enabled", False))
            return Response.success()

        if message.type is MessageType.APPLY:
            return self._apply(message.payload)

        if message.type is MessageType.TRANSCRIPT_UPDATE:
            if not self.enabled or message.payload.get("origin") != Origin.PANEL.value:
                return Response.success({"delivered": False})
            delivered = self.resolver.mirror_transcript(message.payload.get("transcript", ""))
            return Response.success({"delivered": delivered})

        return None

    def _apply(self, payload: dict) -> Response:
        draft_payload = payload.get("draft")
        if isinstance(draft_payload, dict):
            content = draft_payload.get("content") or ""
            draft = normalize_draft(
                DraftResult(
                    raw=content,
                    content=content,
                    subject=draft_payload.get("subject"),
                    paragraphs=tuple(draft_payload.get("paragraphs") or ()),
                )
            )
            applied = self.resolver.apply_draft(draft)
        elif isinstance(payload.get("text"), str):
            applied = self.resolver.apply_text(payload["text"])
        else:
            return Response.failure("Missing text payload.")

        if not applied:
            return Response.failure(NO_TARGET_ERROR)
        return Response.success()

    def _on_editable_focus(self, element: Element) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("Focus on %r outside the event loop; affinity not recorded", element)
            return
        task = loop.create_task(self._report_focus())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _report_focus(self) -> None:
        try:
            await self._channel.send_to_coordinator(focus_message(), sender=self.sender)
        except ChannelError as e:
            logger.debug("Unable to record focus for %s/%s: %s", self.tab_id, self.frame_id, e)
