import json
import logging

from ekko.storage import CAPTURED, COMPOSED, REWRITTEN, SessionStore


def test_upsert_creates_then_updates_active_session():
    store = SessionStore()

    first = store.upsert_transcript("hello")
    second = store.upsert_transcript("hello there")

    assert second.id == first.id
    assert second.created_at == first.created_at
    assert [s.transcript for s in store.list_sessions()] == ["hello there"]
    assert second.actions == [CAPTURED]


def test_empty_transcript_starts_new_session():
    store = SessionStore()
    first = store.upsert_transcript("something")

    fresh = store.upsert_transcript("")

    assert fresh.id != first.id
    assert store.list_sessions()[0] is fresh
    assert store.active_session_id == fresh.id


def test_explicit_id_and_metadata():
    store = SessionStore()
    store.upsert_transcript("draft", id="abc", tag="work")

    updated = store.upsert_transcript("draft v2", id="abc", actions=["Rewritten", CAPTURED, "Rewritten"])

    assert updated.tag == "work"
    assert updated.actions == [CAPTURED, "Rewritten"]
    assert store.get("abc").transcript == "draft v2"


def test_history_persists_to_json(tmp_path):
    path = tmp_path / "history" / "sessions.json"
    store = SessionStore(path)
    session = store.upsert_transcript("remember me", source_url="https://mail.example.com")

    reloaded = SessionStore(path)

    assert reloaded.get(session.id).source_url == "https://mail.example.com"
    assert reloaded.active_session_id == session.id
    assert json.loads(path.read_text(encoding="utf-8"))["sessions"][0]["transcript"] == "remember me"


def test_corrupted_history_starts_empty(tmp_path, caplog):
    path = tmp_path / "sessions.json"
    path.write_text("{not json", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        store = SessionStore(path)

    assert store.list_sessions() == []
    assert "Unable to read session history" in caplog.text


def test_rewrite_history_survives_reload(tmp_path):
    path = tmp_path / "sessions.json"
    store = SessionStore(path)
    session = store.upsert_transcript("meet at noon")
    store.record_rewrite("meet at noon", "Let's meet at noon.", "friendly", session_id=session.id)

    reloaded = SessionStore(path).get(session.id)

    assert reloaded.actions == [CAPTURED, REWRITTEN]
    assert reloaded.rewrites[0]["preset"] == "friendly"
    assert reloaded.rewrites[0]["content"] == "Let's meet at noon."


def test_composition_into_existing_session_keeps_rewrites():
    store = SessionStore()
    session = store.upsert_transcript("notes")
    store.record_rewrite("notes", "Notes.", "formal", session_id=session.id)

    composed = store.record_composition("Dear team,", "email", session_id=session.id)

    assert composed.id == session.id
    assert composed.transcript == "Dear team,"
    assert composed.actions == [CAPTURED, REWRITTEN, COMPOSED]
    assert composed.rewrites[0]["content"] == "Notes."
    assert composed.compositions[0]["instructions"] is None
