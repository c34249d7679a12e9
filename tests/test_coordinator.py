import asyncio
from dataclasses import replace

import pytest

from ekko.agent import NO_TARGET_ERROR
from ekko.channel import MessageChannel
from ekko.coordinator import BridgeStateStore
from ekko.core.config_model import IMMEDIATE
from ekko.delivery import DeliveryRetryLoop
from ekko.dom import Document, TextArea
from ekko.messages import (
    Message,
    MessageType,
    Origin,
    Sender,
    apply_text_message,
    compose_message,
    query_message,
    rewrite_message,
    summarize_message,
    toggle_message,
    transcript_update_message,
)
from ekko.page import PageHost
from ekko.storage import CAPTURED, COMPOSED, REWRITTEN, SUMMARIZED, SessionStore


def _system(tab_id=1, document=None):
    channel = MessageChannel(timeout=1.0)
    host = PageHost(channel)
    store = SessionStore()
    coordinator = BridgeStateStore(channel, host, store)
    coordinator.start()
    if tab_id is not None:
        host.open_tab(tab_id, document if document is not None else Document())
    return channel, host, store, coordinator


async def _settle():
    for _ in range(10):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_query_defaults_to_disabled():
    channel, _, _, coordinator = _system(tab_id=None)

    response = await channel.send_to_coordinator(query_message())

    assert response.ok
    assert response.data == {"enabled": False}
    assert coordinator.query() is False


@pytest.mark.asyncio
async def test_toggle_installs_agents_and_broadcasts():
    channel, host, _, coordinator = _system()
    host.add_frame(1, 5)  # not loaded yet
    notifications = []
    channel.add_listener(notifications.append)

    response = await channel.send_to_coordinator(toggle_message(True))

    assert response.ok
    assert coordinator.enabled is True
    assert host.agent(1).enabled is True
    assert host.agent(1).resolver.attached
    assert host.agent(1, 5) is None
    assert notifications[-1] == toggle_message(True)
    assert Message(MessageType.INITIALIZED, {"enabled": True}) in notifications


@pytest.mark.asyncio
async def test_repeated_enable_installs_once():
    _, host, _, coordinator = _system()

    await coordinator.toggle(True)
    agent = host.agent(1)
    await coordinator.toggle(True)

    assert host.agent(1) is agent
    assert host.script_registered


@pytest.mark.asyncio
async def test_frames_loaded_while_enabled_get_an_agent():
    _, host, _, coordinator = _system()
    await coordinator.toggle(True)

    await host.load_frame(1, 2, Document(TextArea()))

    assert host.agent(1, 2).enabled is True


@pytest.mark.asyncio
async def test_disable_clears_affinity_and_agents_follow():
    _, host, _, coordinator = _system()
    await coordinator.toggle(True)
    coordinator.record_focus(1, 0)

    await coordinator.toggle(False)

    assert coordinator.enabled is False
    assert coordinator.frame_affinity == {}
    assert host.agent(1).enabled is False
    assert not host.script_registered


@pytest.mark.asyncio
async def test_toggle_without_active_tab_reports_failure():
    channel, _, _, coordinator = _system(tab_id=None)

    response = await channel.send_to_coordinator(toggle_message(True))

    assert response.ok is False
    assert coordinator.enabled is False


@pytest.mark.asyncio
async def test_focus_in_records_frame_affinity():
    channel, host, _, coordinator = _system()
    field = TextArea()
    document = Document(field)
    await host.load_frame(1, 3, document)
    await coordinator.toggle(True)

    document.focus(field)
    await _settle()

    assert coordinator.frame_affinity == {1: 3}


@pytest.mark.asyncio
async def test_panel_transcript_is_mirrored_and_recorded():
    field = TextArea(value="old")
    document = Document(field)
    document.focus(field)
    channel, _, store, coordinator = _system(document=document)
    await coordinator.toggle(True)

    response = await channel.send_to_coordinator(transcript_update_message("hello there"))

    assert response.delivered is True
    assert field.value == "hello there"
    assert response.data["session"]["transcript"] == "hello there"
    assert store.list_sessions()[0].actions == [CAPTURED]


@pytest.mark.asyncio
async def test_page_transcript_is_recorded_not_echoed():
    field = TextArea(value="typed in page")
    document = Document(field)
    document.focus(field)
    channel, _, store, coordinator = _system(document=document)
    await coordinator.toggle(True)

    response = await channel.send_to_coordinator(transcript_update_message("from page", Origin.CONTENT))

    assert response.ok
    assert response.delivered is False
    assert field.value == "typed in page"
    assert store.list_sessions()[0].transcript == "from page"


@pytest.mark.asyncio
async def test_transcript_not_delivered_while_disabled():
    field = TextArea()
    document = Document(field)
    document.focus(field)
    channel, _, _, _ = _system(document=document)

    response = await channel.send_to_coordinator(transcript_update_message("hello"))

    assert response.delivered is False
    assert field.value == ""


@pytest.mark.asyncio
async def test_apply_text_inserts_at_caret():
    field = TextArea(value="Dear team, ")
    document = Document(field)
    document.focus(field)
    channel, _, _, coordinator = _system(document=document)
    await coordinator.toggle(True)

    response = await channel.send_to_coordinator(apply_text_message("see below"))

    assert response.ok
    assert field.value == "Dear team, see below"


@pytest.mark.asyncio
async def test_apply_reinstalls_missing_agent_once():
    field = TextArea()
    document = Document(field)
    document.focus(field)
    channel, host, _, _ = _system(document=document)
    assert host.agent(1) is None

    response = await channel.send_to_coordinator(apply_text_message("hello"))

    assert response.ok
    assert host.agent(1) is not None
    assert field.value == "hello"


@pytest.mark.asyncio
async def test_apply_without_target_fails():
    channel, _, _, coordinator = _system()
    await coordinator.toggle(True)

    response = await channel.send_to_coordinator(apply_text_message("hello"))

    assert response.ok is False
    assert response.error == NO_TARGET_ERROR


@pytest.mark.asyncio
async def test_apply_requires_text_or_draft():
    channel, _, _, _ = _system()

    response = await channel.send_to_coordinator(Message(MessageType.APPLY, {}))

    assert response.ok is False
    assert response.error == "Missing text payload."


@pytest.mark.asyncio
async def test_widget_insert_targets_sender_tab():
    widget_field = TextArea()
    widget_page = Document(widget_field)
    widget_page.focus(widget_field)
    channel, host, _, _ = _system(document=widget_page)
    other_field = TextArea()
    other_page = Document(other_field)
    other_page.focus(other_field)
    host.open_tab(2, other_page)

    response = await channel.send_to_coordinator(
        Message(MessageType.WIDGET_INSERT, {"text": "from widget"}), sender=Sender(tab_id=1, frame_id=0)
    )

    assert response.ok
    assert widget_field.value == "from widget"
    assert other_field.value == ""


@pytest.mark.asyncio
async def test_widget_insert_needs_a_tab():
    channel, _, _, _ = _system()

    response = await channel.send_to_coordinator(Message(MessageType.WIDGET_INSERT, {"text": "x"}))

    assert response.ok is False


@pytest.mark.asyncio
async def test_older_panel_update_is_dropped():
    field = TextArea()
    document = Document(field)
    document.focus(field)
    channel, _, store, coordinator = _system(document=document)
    await coordinator.toggle(True)

    newer = await channel.send_to_coordinator(transcript_update_message("B", seq=2))
    older = await channel.send_to_coordinator(transcript_update_message("A", seq=1))
    retry = await channel.send_to_coordinator(transcript_update_message("B", seq=2))

    assert newer.delivered is True
    assert older.delivered is False
    assert older.data["stale"] is True
    assert retry.delivered is True
    assert field.value == "B"
    assert store.list_sessions()[0].transcript == "B"


@pytest.mark.asyncio
async def test_transcript_routed_to_requested_tab():
    first_field, second_field = TextArea(), TextArea()
    first_page, second_page = Document(first_field), Document(second_field)
    first_page.focus(first_field)
    second_page.focus(second_field)
    channel, host, _, coordinator = _system(tab_id=2, document=second_page)
    await coordinator.toggle(True)
    host.open_tab(1, first_page)
    await host.inject(1, 0)

    delivery = DeliveryRetryLoop(channel, IMMEDIATE)
    attempt = delivery.push("for tab two", tab_id=2)
    await delivery.drain(2)

    assert host.active_tab_id == 1
    assert attempt.delivered is True
    assert second_field.value == "for tab two"
    assert first_field.value == ""


@pytest.mark.asyncio
async def test_delivery_acknowledged_by_iframe_without_affinity():
    channel, host, _, coordinator = _system()  # top frame has nothing editable
    field = TextArea()
    frame_page = Document(field)
    frame_page.focus(field)  # focused before the bridge existed
    await host.load_frame(1, 1, frame_page)
    await coordinator.toggle(True)
    assert coordinator.frame_affinity == {}

    delivery = DeliveryRetryLoop(channel, replace(IMMEDIATE, retry_max_attempts=5))
    attempt = delivery.push("hello world")
    await delivery.drain()

    assert attempt.delivered is True
    assert attempt.sends == 1
    assert field.value == "hello world"
    assert field.dispatched_events == ["input"]


@pytest.mark.asyncio
async def test_ai_results_are_recorded_on_sessions():
    channel, _, store, _ = _system()
    captured = await channel.send_to_coordinator(transcript_update_message("call the bank"))
    session_id = captured.data["session"]["id"]

    summarized = await channel.send_to_coordinator(summarize_message("call the bank", "Bank call", session_id))
    await channel.send_to_coordinator(rewrite_message("call the bank", "Please call the bank.", "formal", session_id))
    rewritten = await channel.send_to_coordinator(
        rewrite_message("call the bank", "Call the bank!", "casual", session_id)
    )

    assert summarized.data["summary"] == "Bank call"
    assert rewritten.data["summary"] == "Bank call"
    assert [r["content"] for r in rewritten.data["rewrites"]] == ["Call the bank!", "Please call the bank."]
    assert store.get(session_id).actions == [CAPTURED, SUMMARIZED, REWRITTEN]


@pytest.mark.asyncio
async def test_compose_result_starts_a_session():
    channel, _, store, _ = _system()
    await channel.send_to_coordinator(transcript_update_message("earlier dictation"))

    response = await channel.send_to_coordinator(compose_message("Dear Sam,\n\nThanks.", "email", "thank Sam"))

    session = store.list_sessions()[0]
    assert response.ok
    assert session.id == response.data["id"]
    assert session.transcript == "Dear Sam,\n\nThanks."
    assert session.tag == "thank Sam"
    assert session.actions == [CAPTURED, COMPOSED]
    assert session.compositions[0]["instructions"] == "thank Sam"
    assert len(store.list_sessions()) == 2
