"""Draft structuring for Ekko.

Turns raw dictated text into a structured draft (optional subject line,
ordered paragraphs, joined content) using line-level heuristics, and
reconciles structured output from a model against that heuristic baseline.

Everything in this module is pure: no I/O, no logging side effects.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Iterable, Mapping

PARAGRAPH_SEPARATOR = "\n\n"
SUBJECT_MAX_LENGTH = 80
ELLIPSIS = "…"

# Line classification tables. Each entry is tested independently of the
# insertion machinery (see tests/test_drafts.py).
GREETING_PATTERN = re.compile(r"^(hi|hello|dear|greetings|hey)\b", re.IGNORECASE)
SIGN_OFF_PATTERN = re.compile(
    r"(thanks|thank you|best|regards|cheers|sincerely|kind regards|warm regards|appreciate it)[,!.\s]*$",
    re.IGNORECASE,
)
NAME_MAX_WORDS = 3

SUBJECT_KEYS = ("subject", "title", "headline")
CONTENT_KEYS = ("content", "body", "message")
PARAGRAPH_KEYS = ("paragraphs", "bodyParagraphs")

_CODE_FENCE_OPEN = re.compile(r"^```[a-z]*\s*", re.IGNORECASE)
_TRAILING_SPACES = re.compile(r"[ \t]+$", re.MULTILINE)
_OUTER_NEWLINES = re.compile(r"^\n+|\n+$")
_WHITESPACE_RUN = re.compile(r"\s+")


class LineRole(Enum):
    """How a single dictated line participates in paragraph segmentation."""

    GREETING = auto()
    SIGN_OFF = auto()
    SIGNATURE = auto()
    BODY = auto()


@dataclass(frozen=True)
class DraftResult:
    """Structured draft derived from raw text.

    Attributes:
        raw: The text (or serialized object) the draft was built from
        content: Body text; paragraphs joined by a blank line
        subject: Subject line, or None when the draft has none
        paragraphs: Ordered paragraphs, greetings and sign-offs included
    """

    raw: str
    content: str
    subject: str | None = None
    paragraphs: tuple[str, ...] = field(default_factory=tuple)

    def to_payload(self) -> dict[str, Any]:
        """Subset sent across the message channel; omits an absent subject."""
        payload: dict[str, Any] = {"content": self.content, "paragraphs": list(self.paragraphs)}
        if self.subject is not None:
            payload["subject"] = self.subject
        return payload


def is_greeting(line: str) -> bool:
    return GREETING_PATTERN.search(line.strip()) is not None


def is_sign_off(line: str) -> bool:
    return SIGN_OFF_PATTERN.search(line.strip()) is not None


def looks_like_name(line: str) -> bool:
    stripped = line.strip()
    return " " not in stripped or len(stripped.split()) <= NAME_MAX_WORDS


def classify_line(line: str, *, first_line: bool, previous_paragraph: str | None) -> LineRole:
    """Classify one non-blank line given its position in the draft."""
    if first_line and is_greeting(line):
        return LineRole.GREETING
    if is_sign_off(line):
        return LineRole.SIGN_OFF
    if previous_paragraph is not None and is_sign_off(previous_paragraph) and looks_like_name(line):
        return LineRole.SIGNATURE
    return LineRole.BODY


def normalize_paragraph(paragraph: str) -> str:
    normalized = re.sub(r"\r\n?", "\n", paragraph)
    normalized = _TRAILING_SPACES.sub("", normalized)
    return _OUTER_NEWLINES.sub("", normalized)


def join_paragraphs(paragraphs: Iterable[str]) -> str:
    return PARAGRAPH_SEPARATOR.join(paragraphs)


def derive_paragraphs(text: str) -> list[str]:
    """Split dictated text into paragraphs.

    Blank lines end a paragraph. Greetings (first line only), sign-offs and
    a short name right after a sign-off each become a paragraph of their
    own; other contiguous lines merge, keeping their internal newlines.
    """
    lines = text.replace("\r", "").split("\n")
    paragraphs: list[str] = []
    current: list[str] = []

    def flush() -> None:
        joined = normalize_paragraph("\n".join(current))
        if joined:
            paragraphs.append(joined)
        current.clear()

    def push(value: str) -> None:
        normalized = normalize_paragraph(value)
        if normalized:
            paragraphs.append(normalized)

    for raw_line in lines:
        line = raw_line.strip()
        if not line:
            flush()
            continue

        role = classify_line(
            line,
            first_line=not paragraphs and not current,
            previous_paragraph=paragraphs[-1] if paragraphs else None,
        )
        stored = raw_line.rstrip(" \t")

        if role is LineRole.BODY:
            current.append(stored)
            continue

        flush()
        push(stored.lstrip())

    flush()

    if not paragraphs and text.strip():
        return [normalize_paragraph(text)]
    return paragraphs


def derive_subject(paragraphs: Iterable[str] | None, content: str, max_length: int = SUBJECT_MAX_LENGTH) -> str | None:
    """Synthesize a subject from the first paragraph, or the content."""
    paragraphs = list(paragraphs or [])
    source = paragraphs[0] if paragraphs else content
    cleaned = _WHITESPACE_RUN.sub(" ", source or "").strip()
    if not cleaned:
        return None
    if len(cleaned) <= max_length:
        return cleaned
    return cleaned[: max_length - 3].rstrip() + ELLIPSIS


def _sanitize_text(value: Any) -> str | None:
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    return None


def _sanitize_paragraphs(value: Any) -> list[str] | None:
    if not isinstance(value, (list, tuple)):
        return None
    normalized = [normalize_paragraph(entry) if isinstance(entry, str) else "" for entry in value]
    normalized = [entry for entry in normalized if entry]
    return normalized or None


def _first_of(mapping: Mapping[str, Any], keys: Iterable[str], sanitize) -> Any:
    for key in keys:
        value = sanitize(mapping.get(key))
        if value:
            return value
    return None


def _resolve_paragraphs(paragraphs: list[str] | None, content: str | None) -> list[str]:
    if content and not paragraphs:
        return derive_paragraphs(content)
    if paragraphs and content:
        if join_paragraphs(paragraphs).strip() == content.strip():
            return paragraphs
        return derive_paragraphs(content)
    return paragraphs or []


def strip_code_fence(raw: str) -> str:
    """Remove a surrounding Markdown code fence, if any."""
    trimmed = raw.strip()
    if not trimmed.startswith("```"):
        return raw
    without_fence = _CODE_FENCE_OPEN.sub("", trimmed, count=1)
    fence_index = without_fence.rfind("```")
    if fence_index >= 0:
        return without_fence[:fence_index].strip()
    return without_fence.strip()


def _draft_from_mapping(mapping: Mapping[str, Any], raw: str) -> DraftResult | None:
    subject = _first_of(mapping, SUBJECT_KEYS, _sanitize_text)
    paragraphs = _first_of(mapping, PARAGRAPH_KEYS, _sanitize_paragraphs)
    content = _first_of(mapping, CONTENT_KEYS, _sanitize_text)

    resolved_paragraphs = _resolve_paragraphs(paragraphs, content)
    resolved_content = content or join_paragraphs(resolved_paragraphs)
    if not resolved_content:
        return None

    return DraftResult(
        raw=raw,
        content=resolved_content,
        subject=subject or derive_subject(resolved_paragraphs, resolved_content),
        paragraphs=tuple(resolved_paragraphs),
    )


def parse_draft_json(raw: str) -> DraftResult | None:
    cleaned = strip_code_fence(raw)
    if not cleaned.strip():
        return None
    try:
        parsed = json.loads(cleaned)
    except ValueError:
        return None
    if not isinstance(parsed, dict):
        return None
    return _draft_from_mapping(parsed, raw=cleaned)


def coerce_draft(value: Any) -> DraftResult | None:
    """Interpret model output as a draft.

    Accepts a JSON string (optionally fenced) or a mapping. Returns None
    when no content can be resolved, which callers treat as "not a draft".
    """
    if isinstance(value, DraftResult):
        return value
    if isinstance(value, str):
        return parse_draft_json(value)
    if isinstance(value, Mapping):
        return _draft_from_mapping(value, raw=json.dumps(value, ensure_ascii=False))
    return None


def create_fallback_draft(text: str) -> DraftResult:
    """Heuristic draft used whenever model structuring is unavailable."""
    normalized = text.strip()
    paragraphs = derive_paragraphs(normalized)
    return DraftResult(
        raw=text,
        content=join_paragraphs(paragraphs),
        subject=derive_subject(paragraphs, normalized),
        paragraphs=tuple(paragraphs),
    )


def normalize_draft(draft: DraftResult) -> DraftResult:
    """Re-validate paragraph/content agreement. Idempotent."""
    raw_content = _sanitize_text(draft.content) or ""
    provided = _sanitize_paragraphs(draft.paragraphs) or []

    if provided:
        if raw_content and join_paragraphs(provided).strip() != raw_content.strip():
            paragraphs = derive_paragraphs(raw_content)
        else:
            paragraphs = provided
    elif raw_content:
        paragraphs = derive_paragraphs(raw_content)
    else:
        paragraphs = []

    content = join_paragraphs(paragraphs).strip() if paragraphs else raw_content

    return DraftResult(
        raw=draft.raw,
        content=content,
        subject=_sanitize_text(draft.subject),
        paragraphs=tuple(paragraphs),
    )


def draft_to_clipboard_text(draft: DraftResult) -> str:
    subject = (draft.subject or "").strip()
    content = join_paragraphs(draft.paragraphs) if draft.paragraphs else draft.content
    return f"{subject}{PARAGRAPH_SEPARATOR}{content}" if subject else content
