"""Message and response types exchanged between Ekko execution contexts."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MessageType(str, Enum):
    TOGGLE = "ekko/direct-insert/toggle"
    QUERY = "ekko/direct-insert/query"
    FOCUS = "ekko/direct-insert/focus"
    APPLY = "ekko/direct-insert/apply"
    INITIALIZED = "ekko/direct-insert/initialized"
    WIDGET_INSERT = "ekko/widget/insert"
    TRANSCRIPT_UPDATE = "ekko/transcript/update"
    AI_SUMMARIZE = "ekko/ai/summarize"
    AI_REWRITE = "ekko/ai/rewrite"
    AI_COMPOSE = "ekko/ai/compose"


class Origin(str, Enum):
    PANEL = "panel"
    CONTENT = "content"


@dataclass(frozen=True)
class Message:
    type: MessageType
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Sender:
    """Identity of the sending context; implicit on every channel send."""

    tab_id: int | None = None
    frame_id: int | None = None


@dataclass(frozen=True)
class Response:
    ok: bool
    data: Any = None
    error: str | None = None

    @classmethod
    def success(cls, data: Any = None) -> "Response":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str) -> "Response":
        return cls(ok=False, error=error)

    @property
    def delivered(self) -> bool:
        """True only for an explicit ``delivered: true`` acknowledgment."""
        return self.ok and isinstance(self.data, dict) and self.data.get("delivered") is True


def toggle_message(enabled: bool) -> Message:
    return Message(MessageType.TOGGLE, {"enabled": bool(enabled)})


def query_message() -> Message:
    return Message(MessageType.QUERY)


def focus_message() -> Message:
    return Message(MessageType.FOCUS)


def initialized_message(enabled: bool) -> Message:
    return Message(MessageType.INITIALIZED, {"enabled": bool(enabled)})


def apply_text_message(text: str) -> Message:
    return Message(MessageType.APPLY, {"text": text})


def apply_draft_message(draft: dict[str, Any]) -> Message:
    return Message(MessageType.APPLY, {"draft": draft})


def transcript_update_message(
    transcript: str,
    origin: Origin = Origin.PANEL,
    seq: int | None = None,
    tab_id: int | None = None,
) -> Message:
    """``seq`` orders panel updates; ``tab_id`` targets a tab other than the active one."""
    payload: dict[str, Any] = {"transcript": transcript, "origin": Origin(origin).value}
    if seq is not None:
        payload["seq"] = seq
    if tab_id is not None:
        payload["tab_id"] = tab_id
    return Message(MessageType.TRANSCRIPT_UPDATE, payload)


def summarize_message(transcript: str, summary: str, session_id: str | None = None) -> Message:
    return Message(MessageType.AI_SUMMARIZE, {"transcript": transcript, "summary": summary, "session_id": session_id})


def rewrite_message(transcript: str, rewrite: str, preset: str, session_id: str | None = None) -> Message:
    return Message(
        MessageType.AI_REWRITE,
        {"transcript": transcript, "rewrite": rewrite, "preset": preset, "session_id": session_id},
    )


def compose_message(
    output: str, preset: str, instructions: str | None = None, session_id: str | None = None
) -> Message:
    return Message(
        MessageType.AI_COMPOSE,
        {"output": output, "preset": preset, "instructions": instructions, "session_id": session_id},
    )
