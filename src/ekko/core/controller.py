"""Core orchestration for one-shot inserts from the panel.

Keeps the structure -> enable bridge -> apply -> fall back pipeline in one
place, decoupled from the clipboard and the status display via ports.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from ..drafts import DraftResult, draft_to_clipboard_text
from ..errors import DraftAborted, EkkoError, InsertionError
from ..messages import Sender, apply_draft_message, apply_text_message
from .cancel_token import CancelToken
from .ports import Clipboard, StatusFeedback

if TYPE_CHECKING:
    from ..channel import MessageChannel
    from ..messages import Message
    from ..structuring import StructuringService
    from ..temporary_enable import TemporaryEnableCoordinator

logger = logging.getLogger(__name__)

STATUS_INSERTING = "Inserting into page…"
STATUS_TEMPORARY = "Temporarily enabling Direct Insert Mode…"
STATUS_PREPARING = "Preparing email draft…"
STATUS_INSERTED = "Draft inserted into page."
STATUS_NOTHING = "Nothing to insert yet."
STATUS_COPIED = "Copied to clipboard instead."
STATUS_COMPOSE_COPIED = "Output copied to clipboard."
STATUS_COMPOSE_EMPTY = "Compose returned no response."
STATUS_BRIDGE_OFF = "Direct Insert Mode is off. Output shown below."


class InsertOutcome(Enum):
    INSERTED = auto()
    COPIED = auto()
    SHOWN = auto()
    NOTHING = auto()
    ABORTED = auto()


@dataclass(frozen=True)
class InsertResult:
    outcome: InsertOutcome
    status: str


class InsertController:
    """Runs the panel's insert and compose-delivery flows."""

    def __init__(
        self,
        bridge: TemporaryEnableCoordinator,
        channel: MessageChannel,
        clipboard: Clipboard,
        ui: StatusFeedback,
        structuring: StructuringService | None = None,
        sender: Sender | None = None,
    ):
        self._bridge = bridge
        self._channel = channel
        self._clipboard = clipboard
        self._ui = ui
        self._structuring = structuring
        self._sender = sender or Sender()
        self._cancel_token = CancelToken()

    def cancel(self) -> None:
        """Abort structuring of the insert in flight, if any."""
        self._cancel_token.cancel()

    def _report(self, outcome: InsertOutcome, status: str) -> InsertResult:
        self._ui.status(status)
        return InsertResult(outcome, status)

    async def insert_transcript(self, text: str, already_rewritten: bool = False) -> InsertResult:
        """Insert the transcript into the page, structured as a draft unless rewritten."""
        trimmed = text.strip()
        if not trimmed:
            return self._report(InsertOutcome.NOTHING, STATUS_NOTHING)

        # A newer insert supersedes any generation still running.
        self._cancel_token.cancel()
        token = self._cancel_token = CancelToken()

        self._ui.status(STATUS_INSERTING if self._bridge.enabled else STATUS_TEMPORARY)

        draft: DraftResult | None = None
        if not already_rewritten and self._structuring is not None:
            self._ui.status(STATUS_PREPARING)
            try:
                draft = await self._structuring.compose(trimmed, cancel_token=token)
            except DraftAborted:
                logger.debug("Insert superseded before structuring finished")
                return InsertResult(InsertOutcome.ABORTED, "")

        message = apply_draft_message(draft.to_payload()) if draft else apply_text_message(trimmed)

        try:
            await self._bridge.run_with_bridge(lambda: self._apply(message))
        except EkkoError as e:
            logger.info("Direct insert failed, falling back to clipboard: %s", e)
            if self._clipboard.copy(trimmed):
                return self._report(InsertOutcome.COPIED, STATUS_COPIED)
            return self._report(InsertOutcome.SHOWN, str(e))

        return self._report(InsertOutcome.INSERTED, STATUS_INSERTED)

    async def deliver_compose(self, draft: DraftResult | None) -> InsertResult:
        """Insert a compose draft when the bridge is on; otherwise leave it in the panel."""
        if draft is None or not draft.content.strip():
            return self._report(InsertOutcome.SHOWN, STATUS_COMPOSE_EMPTY)
        if not self._bridge.enabled:
            return self._report(InsertOutcome.SHOWN, STATUS_BRIDGE_OFF)

        try:
            await self._apply(apply_draft_message(draft.to_payload()))
        except EkkoError as e:
            logger.info("Compose delivery failed: %s", e)
            if self._clipboard.copy(draft_to_clipboard_text(draft)):
                return self._report(InsertOutcome.COPIED, STATUS_COMPOSE_COPIED)
            return self._report(InsertOutcome.SHOWN, str(e))

        return self._report(InsertOutcome.INSERTED, STATUS_INSERTED)

    async def _apply(self, message: Message) -> None:
        response = await self._channel.send_to_coordinator(message, sender=self._sender)
        if not response.ok:
            raise InsertionError(response.error or "Unable to insert into page.")
