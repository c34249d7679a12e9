"""Core ports (interfaces) for Ekko.

These protocols define the boundaries between the bridge machinery and the
collaborators it does not own: the speech engine, the structuring model,
session persistence, the clipboard, user-visible status, and the foreign
editable surface. They are intentionally small and capability-oriented.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, AsyncIterator, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..storage import Session
    from ..transcript import TranscriptSegment


class SurfaceRole(Enum):
    SUBJECT = "subject"
    BODY = "body"


@runtime_checkable
class SpeechEngine(Protocol):
    """Speech-to-text engine producing final and interim segments in order."""

    def segments(self) -> AsyncIterator["TranscriptSegment"]:
        """Yield transcript segments until recognition stops."""


@runtime_checkable
class StructuringModel(Protocol):
    """Model that turns raw dictated text into a structured draft."""

    def generate(self, text: str, system_prompt: str) -> AsyncIterator[str | dict[str, Any]]:
        """Yield successive, larger prefixes of the response (or one final value)."""


@runtime_checkable
class TranscriptStore(Protocol):
    """Append-only session history."""

    def upsert_transcript(self, transcript: str, **metadata) -> "Session":
        """Create or update the session holding ``transcript``."""

    def record_summary(self, transcript: str, summary: str, session_id: str | None = None) -> "Session":
        """Record a summary of the transcript."""

    def record_rewrite(self, transcript: str, rewrite: str, preset: str, session_id: str | None = None) -> "Session":
        """Prepend a rewrite to the session's rewrite history."""

    def record_composition(
        self, output: str, preset: str, instructions: str | None = None, session_id: str | None = None
    ) -> "Session":
        """Prepend a composition; the output becomes the transcript."""


@runtime_checkable
class Clipboard(Protocol):
    """System clipboard used as insertion fallback."""

    def copy(self, text: str) -> bool:
        """Copy text; returns False when the clipboard is unavailable."""


@runtime_checkable
class StatusFeedback(Protocol):
    """User-visible status line of the panel."""

    def status(self, message: str) -> None:
        """Display a short status message."""


@runtime_checkable
class EditableSurface(Protocol):
    """Capability view over a foreign text input, text area or rich region."""

    @property
    def role(self) -> SurfaceRole:
        """Whether the surface looks like a subject line or a body."""

    def read_value(self) -> str:
        """Return the current text of the surface."""

    def write_value(self, text: str, paragraphs: list[str] | None = None) -> None:
        """Replace the whole value, one block per paragraph where supported."""

    def insert_at_cursor(self, text: str) -> None:
        """Insert text at the caret, replacing any selected range."""
