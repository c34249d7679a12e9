#!/usr/bin/env python3
"""Ekko command line: structure dictated text, or run it through the bridge"""

import argparse
import asyncio
import json
import logging
import sys

from .adapters.ui_feedback import NotifyStatusFeedback
from .config import config
from .core.config_model import IMMEDIATE
from .dom import Document, Element, TextInput, rendered_blocks
from .drafts import create_fallback_draft
from .runtime import EkkoRuntime

DEMO_TAB_ID = 1


def _read_text(path: str | None) -> str:
    if path is None or path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as f:
        return f.read()


def build_compose_document() -> tuple[Document, TextInput, Element]:
    """A mail compose form: subject line plus a rich message body."""
    subject = TextInput({"name": "subjectbox", "aria-label": "Subject"})
    body = Element("div", {"contenteditable": "true", "role": "textbox", "aria-label": "Message Body"})
    form = Element("form", {"aria-label": "New Message"}, subject, body)
    return Document(form), subject, body


async def run_demo(text: str, runtime: EkkoRuntime | None = None) -> dict:
    """Insert ``text`` into a synthetic compose form with the bridge off.

    The panel enables the bridge for the duration of the insert and turns
    it off again afterwards.
    """
    runtime = runtime or EkkoRuntime(timings=IMMEDIATE)
    document, subject, body = build_compose_document()
    runtime.host.open_tab(DEMO_TAB_ID, document)
    document.focus(body)

    await runtime.start()
    try:
        result = await runtime.panel.controller.insert_transcript(text)
    finally:
        await runtime.stop()

    return {
        "outcome": result.outcome.name,
        "status": result.status,
        "subject": subject.value,
        "blocks": rendered_blocks(body),
        "direct_insert_enabled": runtime.coordinator.enabled,
    }


def cmd_draft(args: argparse.Namespace) -> int:
    draft = create_fallback_draft(_read_text(args.file))
    print(json.dumps(draft.to_payload(), indent=2, ensure_ascii=False))
    return 0


def cmd_demo(args: argparse.Namespace) -> int:
    text = _read_text(args.file)
    runtime = EkkoRuntime(timings=IMMEDIATE, ui=NotifyStatusFeedback() if args.notify else None)
    report = asyncio.run(run_demo(text, runtime))
    print(json.dumps(report, indent=2, ensure_ascii=False))
    return 0 if report["outcome"] == "INSERTED" else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ekko")
    parser.add_argument("-v", "--verbose", action="store_true", help="log at DEBUG level")
    sub = parser.add_subparsers(dest="command", required=True)

    draft = sub.add_parser("draft", help="print the structured draft of FILE (or stdin) as JSON")
    draft.add_argument("file", nargs="?")
    draft.set_defaults(func=cmd_draft)

    demo = sub.add_parser("demo", help="insert FILE (or stdin) into a synthetic compose form")
    demo.add_argument("file", nargs="?")
    demo.add_argument("--notify", action="store_true", help="show status messages as desktop notifications")
    demo.set_defaults(func=cmd_demo)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    level = "DEBUG" if args.verbose else config.LOG_LEVEL
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
