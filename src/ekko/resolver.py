"""Insertion target resolution for the page-resident agent.

Tracks the most recently focused editable surface of a document, classifies
candidates as subject-like or body-like, and applies raw text or a
structured draft to one or two resolved surfaces.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from .core.ports import SurfaceRole
from .dom import Document, Element, as_surface, is_editable, surface_role
from .drafts import DraftResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttributeSelector:
    """Match on tag and/or a case-insensitive attribute substring."""

    tag: str | None = None
    attribute: str | None = None
    contains: str | None = None

    def matches(self, element: Element) -> bool:
        if self.tag is not None and element.tag != self.tag:
            return False
        if self.attribute is None:
            return True
        value = element.get_attribute(self.attribute)
        if value is None:
            return False
        return self.contains is None or self.contains in value.lower()


SUBJECT_SELECTORS = (
    AttributeSelector("input", "name", "subject"),
    AttributeSelector("input", "aria-label", "subject"),
    AttributeSelector("input", "placeholder", "subject"),
    AttributeSelector("input", "id", "subject"),
    AttributeSelector(None, "aria-label", "subject"),
)

BODY_SELECTORS = (
    AttributeSelector(None, "aria-label", "message body"),
    AttributeSelector(None, "aria-label", "body"),
    AttributeSelector(None, "name", "body"),
    AttributeSelector(None, "role", "textbox"),
    AttributeSelector(None, "contenteditable"),
    AttributeSelector("textarea"),
)

CONTAINER_TAGS = frozenset({"form", "dialog"})
CONTAINER_ROLES = frozenset({"form", "dialog", "region"})
CONTAINER_HINT = "message"


def is_compose_container(element: Element) -> bool:
    # An editable surface is a search target, never the scope around one.
    if is_editable(element):
        return False
    if element.tag in CONTAINER_TAGS:
        return True
    if (element.get_attribute("role") or "").lower() in CONTAINER_ROLES:
        return True
    label = (element.get_attribute("aria-label") or "").lower()
    classes = (element.get_attribute("class") or "").lower()
    return CONTAINER_HINT in label or CONTAINER_HINT in classes


class InsertionTargetResolver:
    """Per-document focus tracking and application strategies."""

    def __init__(self, document: Document, on_editable_focus: Callable[[Element], None] | None = None):
        self.document = document
        self.last_editable: Element | None = None
        self._on_editable_focus = on_editable_focus
        self._attached = False

    # -- focus tracking -----------------------------------------------

    def attach(self) -> None:
        if self._attached:
            return
        self.document.add_event_listener("focusin", self.track_focus)
        self._attached = True

    def detach(self) -> None:
        self.document.remove_event_listener("focusin", self.track_focus)
        self._attached = False
        self.last_editable = None

    @property
    def attached(self) -> bool:
        return self._attached

    def track_focus(self, element: Element) -> None:
        if is_editable(element):
            self.last_editable = element
            if self._on_editable_focus is not None:
                self._on_editable_focus(element)
        else:
            self.last_editable = None

    def focused_editable(self) -> Element | None:
        active = self.document.active_element
        return active if is_editable(active) else None

    def resolve_target(self) -> Element | None:
        """Last focused editable while still attached, else the focused one."""
        if self.last_editable is not None and self.document.contains(self.last_editable):
            return self.last_editable
        self.last_editable = None
        return self.focused_editable()

    # -- classification -----------------------------------------------

    @staticmethod
    def classify(element: Element) -> SurfaceRole:
        return surface_role(element)

    def _search_scopes(self, anchor: Element | None) -> list[Element]:
        scopes = []
        if anchor is not None and anchor.parent is not None:
            container = anchor.parent.closest(is_compose_container)
            if container is not None:
                scopes.append(container)
        scopes.append(self.document.body)
        return scopes

    def _find(self, selectors, role: SurfaceRole, anchor: Element | None, exclude: Element | None) -> Element | None:
        other = SurfaceRole.BODY if role is SurfaceRole.SUBJECT else SurfaceRole.SUBJECT
        for scope in self._search_scopes(anchor):
            candidates = [scope, *scope.iter_descendants()]
            for selector in selectors:
                for candidate in candidates:
                    if candidate is exclude or not selector.matches(candidate):
                        continue
                    if not is_editable(candidate):
                        continue
                    if self.classify(candidate) is other:
                        continue
                    return candidate
        return None

    def find_subject_field(self, anchor: Element | None = None, exclude: Element | None = None) -> Element | None:
        return self._find(SUBJECT_SELECTORS, SurfaceRole.SUBJECT, anchor, exclude)

    def find_body_field(self, anchor: Element | None = None, exclude: Element | None = None) -> Element | None:
        return self._find(BODY_SELECTORS, SurfaceRole.BODY, anchor, exclude)

    # -- application strategies ---------------------------------------

    def replace_value(self, element: Element, text: str, paragraphs: list[str] | None = None) -> bool:
        surface = as_surface(element, self.document)
        if surface is None:
            return False
        surface.write_value(text, paragraphs)
        return True

    def insert_at_cursor(self, element: Element, text: str) -> bool:
        surface = as_surface(element, self.document)
        if surface is None:
            return False
        surface.insert_at_cursor(text)
        return True

    def apply_text(self, text: str) -> bool:
        """One-shot raw text insert at the caret of the resolved target."""
        target = self.resolve_target()
        if target is None:
            return False
        return self.insert_at_cursor(target, text)

    def mirror_transcript(self, transcript: str) -> bool:
        """Live mirroring: the target's whole value follows the transcript."""
        target = self.resolve_target()
        if target is None:
            return False
        return self.replace_value(target, transcript)

    def apply_draft(self, draft: DraftResult) -> bool:
        current = self.resolve_target()
        subject_target: Element | None = None
        applied = False

        if draft.subject:
            if current is not None and self.classify(current) is SurfaceRole.SUBJECT:
                subject_target = current
            else:
                subject_target = self.find_subject_field(anchor=current)
            if subject_target is not None:
                applied = self.replace_value(subject_target, draft.subject)

        if not draft.content:
            return applied

        paragraphs = list(draft.paragraphs) or None
        body_target = current if current is not None and current is not subject_target else None
        if body_target is None:
            body_target = self.find_body_field(anchor=current or subject_target, exclude=subject_target)
        if body_target is None:
            focused = self.focused_editable()
            # Never reuse the surface that just received the subject.
            if focused is not subject_target:
                body_target = focused

        if body_target is not None and self.replace_value(body_target, draft.content, paragraphs):
            return True

        if not applied:
            focused = self.focused_editable()
            if focused is not None and focused is not subject_target:
                return self.replace_value(focused, draft.content, paragraphs)
            logger.debug("No editable surface for draft body")
        return applied
