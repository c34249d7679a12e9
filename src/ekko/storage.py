"""Transcript session history for Ekko."""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

CAPTURED = "Captured"
SUMMARIZED = "Summarized"
REWRITTEN = "Rewritten"
COMPOSED = "Composed"


@dataclass
class Session:
    """One captured transcript and what was done with it."""

    id: str
    created_at: float
    updated_at: float
    transcript: str
    actions: list[str] = field(default_factory=lambda: [CAPTURED])
    summary: str | None = None
    rewrites: list[dict] | None = None
    compositions: list[dict] | None = None
    tag: str | None = None
    source_url: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def _history_entry(preset: str, content: str, **extra) -> dict:
    """A rewrite or composition record, newest first in its session."""
    return {"id": str(uuid.uuid4()), "preset": preset, "content": content, **extra, "created_at": time.time()}


def _merge_actions(existing: list[str], added: list[str]) -> list[str]:
    combined = [*existing, *added]
    if CAPTURED not in combined:
        combined.insert(0, CAPTURED)
    deduped = []
    for action in combined:
        if action not in deduped:
            deduped.append(action)
    return deduped


class SessionStore:
    """Session history, newest first, optionally persisted to a JSON file."""

    def __init__(self, history_path: Path | str | None = None):
        self.history_path = Path(history_path) if history_path else None
        self.sessions: list[Session] = []
        self.active_session_id: str | None = None
        self._load()

    def _load(self) -> None:
        if self.history_path is None or not self.history_path.exists():
            return

        try:
            with open(self.history_path, encoding="utf-8") as f:
                data = json.load(f)
            self.sessions = [Session(**entry) for entry in data.get("sessions", [])]
            self.active_session_id = data.get("active_session_id")
        except (json.JSONDecodeError, OSError, TypeError) as e:
            # Corrupted history starts empty
            logger.warning("Unable to read session history %s: %s", self.history_path, e)
            self.sessions = []
            self.active_session_id = None

    def _save(self) -> None:
        if self.history_path is None:
            return

        data = {
            "active_session_id": self.active_session_id,
            "sessions": [session.to_dict() for session in self.sessions],
        }
        try:
            self.history_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.history_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.warning("Unable to write session history %s: %s", self.history_path, e)

    def list_sessions(self) -> list[Session]:
        return list(self.sessions)

    def get(self, session_id: str) -> Session | None:
        return next((s for s in self.sessions if s.id == session_id), None)

    def _resolve_id(self, transcript: str, session_id: str | None) -> str:
        if session_id:
            return session_id
        if not transcript.strip():
            return str(uuid.uuid4())
        candidate = self.active_session_id
        if candidate and self.get(candidate) is not None:
            return candidate
        if self.sessions:
            return self.sessions[0].id
        return str(uuid.uuid4())

    def upsert_transcript(
        self,
        transcript: str,
        id: str | None = None,
        actions: list[str] | None = None,
        summary: str | None = None,
        rewrites: list[dict] | None = None,
        compositions: list[dict] | None = None,
        tag: str | None = None,
        source_url: str | None = None,
    ) -> Session:
        """Create or update the session holding ``transcript``.

        An explicit id wins; otherwise the active session (or the newest) is
        updated. An empty transcript always starts a new session.
        """
        session_id = self._resolve_id(transcript, id)
        self.active_session_id = session_id
        now = time.time()
        existing = self.get(session_id)

        updated = Session(
            id=session_id,
            created_at=existing.created_at if existing else now,
            updated_at=now,
            transcript=transcript,
            actions=_merge_actions(existing.actions if existing else [], actions or []),
            summary=summary if summary is not None else (existing.summary if existing else None),
            rewrites=rewrites if rewrites is not None else (existing.rewrites if existing else None),
            compositions=compositions if compositions is not None else (existing.compositions if existing else None),
            tag=tag if tag is not None else (existing.tag if existing else None),
            source_url=source_url if source_url is not None else (existing.source_url if existing else None),
        )

        if existing is not None:
            self.sessions[self.sessions.index(existing)] = updated
        else:
            self.sessions.insert(0, updated)

        self._save()
        return updated

    # -- AI results ---------------------------------------------------

    def record_summary(self, transcript: str, summary: str, session_id: str | None = None) -> Session:
        return self.upsert_transcript(transcript, id=session_id, summary=summary, actions=[SUMMARIZED])

    def record_rewrite(self, transcript: str, rewrite: str, preset: str, session_id: str | None = None) -> Session:
        existing = self.get(session_id) if session_id else None
        entry = _history_entry(preset, rewrite)
        rewrites = [entry, *(existing.rewrites or [])] if existing else [entry]
        return self.upsert_transcript(transcript, id=session_id, rewrites=rewrites, actions=[REWRITTEN])

    def record_composition(
        self,
        output: str,
        preset: str,
        instructions: str | None = None,
        session_id: str | None = None,
    ) -> Session:
        """Store a compose result; the output becomes the session's transcript.

        Without a session id the composition always starts a new session.
        """
        existing = self.get(session_id) if session_id else None
        entry = _history_entry(preset, output, instructions=instructions)
        compositions = [entry, *(existing.compositions or [])] if existing else [entry]
        return self.upsert_transcript(
            output,
            id=session_id or str(uuid.uuid4()),
            compositions=compositions,
            actions=[COMPOSED],
            tag=instructions,
        )
