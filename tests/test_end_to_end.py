import pytest

from ekko.adapters.speech import ScriptedSpeechEngine
from ekko.core.config_model import IMMEDIATE
from ekko.core.controller import InsertOutcome
from ekko.dom import Document, Element, TextArea, TextNode, rendered_blocks
from ekko.main import run_demo
from ekko.runtime import EkkoRuntime
from ekko.storage import SessionStore


class _NoClipboard:
    def copy(self, text: str) -> bool:
        return False


def _runtime():
    return EkkoRuntime(timings=IMMEDIATE, store=SessionStore(), clipboard=_NoClipboard())


@pytest.mark.asyncio
async def test_transcript_lands_as_blocks_in_rich_region():
    region = Element("div", {"contenteditable": "true"}, TextNode("previous draft"))
    document = Document(region)
    document.focus(region)
    runtime = _runtime()
    runtime.host.open_tab(1, document)
    await runtime.start()

    result = await runtime.panel.controller.insert_transcript(
        "hello there\n\nhope this reaches you well\n\nbest,\nJordan"
    )

    assert result.outcome is InsertOutcome.INSERTED
    assert rendered_blocks(region) == ["hello there", "hope this reaches you well", "best,", "Jordan"]
    assert [child.tag for child in region.children] == ["div", "div", "div", "div"]
    assert runtime.coordinator.enabled is False
    assert runtime.panel.direct_insert_enabled is False


@pytest.mark.asyncio
async def test_live_transcript_is_mirrored_while_enabled():
    field = TextArea()
    document = Document(field)
    runtime = _runtime()
    runtime.host.open_tab(1, document)
    await runtime.start()
    await runtime.panel.set_direct_insert(True)
    document.focus(field)

    final = await runtime.panel.consume(ScriptedSpeechEngine(["hello there", "general Kenobi"], interim=True))

    assert final == "hello there general Kenobi"
    assert field.value == "hello there general Kenobi"
    assert runtime.store.list_sessions()[0].transcript == "hello there general Kenobi"


@pytest.mark.asyncio
async def test_demo_fills_compose_form():
    report = await run_demo("Hi Sam,\nThe deck is attached.\nThanks,\nAlex", runtime=_runtime())

    assert report["outcome"] == "INSERTED"
    assert report["subject"] == "Hi Sam,"
    assert report["blocks"] == ["Hi Sam,", "The deck is attached.", "Thanks,", "Alex"]
    assert report["direct_insert_enabled"] is False
