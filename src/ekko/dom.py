"""Minimal document model for the page-resident insertion agent.

The foreign page is modelled as a tree of elements, text nodes and line
breaks. Only what the insertion agent touches is modelled: focus, text
controls with a selection, rich editable regions with a caret, and
synthetic ``input`` events.

This is the one platform-specific layer. Everything above it talks to an
editable surface through ``as_surface()`` and the ``EditableSurface`` port.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator

from .core.ports import EditableSurface, SurfaceRole

NON_TEXT_INPUT_TYPES = frozenset({"button", "submit", "checkbox", "radio", "range", "color"})
SUBJECT_HINT_ATTRIBUTES = ("aria-label", "placeholder", "name", "id")
SUBJECT_HINT = "subject"
BLOCK_TAGS = frozenset({"div", "p", "li", "blockquote", "section", "article", "h1", "h2", "h3"})
_EDITABLE_VALUES = frozenset({"", "true", "plaintext-only"})


class Node:
    def __init__(self):
        self.parent: Element | None = None

    @property
    def root(self) -> "Node":
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def remove(self) -> None:
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None


class TextNode(Node):
    def __init__(self, data: str = ""):
        super().__init__()
        self.data = data


class LineBreak(Node):
    tag = "br"


class Element(Node):
    def __init__(self, tag: str, attributes: dict[str, str] | None = None, *children: Node):
        super().__init__()
        self.tag = tag.lower()
        self.attributes: dict[str, str] = dict(attributes or {})
        self.children: list[Node] = []
        self.dispatched_events: list[str] = []
        self.append(*children)

    def __repr__(self) -> str:
        return f"<{self.tag} {self.attributes!r}>"

    def append(self, *nodes: Node) -> None:
        for node in nodes:
            node.remove()
            node.parent = self
            self.children.append(node)

    def insert_after(self, reference: Node, *nodes: Node) -> None:
        index = self.children.index(reference) + 1
        for offset, node in enumerate(nodes):
            node.remove()
            node.parent = self
            self.children.insert(index + offset, node)

    def clear(self) -> None:
        for child in list(self.children):
            child.remove()

    def get_attribute(self, name: str) -> str | None:
        return self.attributes.get(name)

    def contains(self, node: Node | None) -> bool:
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    def closest(self, predicate: Callable[["Element"], bool]) -> "Element | None":
        node: Element | None = self
        while node is not None:
            if predicate(node):
                return node
            node = node.parent
        return None

    def iter_descendants(self) -> Iterator["Element"]:
        for child in self.children:
            if isinstance(child, Element):
                yield child
                yield from child.iter_descendants()

    def iter_text_nodes(self) -> Iterator[TextNode]:
        for child in self.children:
            if isinstance(child, TextNode):
                yield child
            elif isinstance(child, Element):
                yield from child.iter_text_nodes()

    @property
    def is_content_editable(self) -> bool:
        node: Element | None = self
        while node is not None:
            value = node.get_attribute("contenteditable")
            if value is not None:
                return value.lower() in _EDITABLE_VALUES
            node = node.parent
        return False

    def dispatch_event(self, name: str) -> None:
        self.dispatched_events.append(name)


class TextControl(Element):
    """Shared value/selection behaviour of ``<input>`` and ``<textarea>``."""

    def __init__(self, tag: str, attributes: dict[str, str] | None = None, value: str = ""):
        super().__init__(tag, attributes)
        self.value = value
        self.selection_start = len(value)
        self.selection_end = len(value)

    def set_selection(self, start: int, end: int | None = None) -> None:
        end = start if end is None else end
        self.selection_start = max(0, min(start, len(self.value)))
        self.selection_end = max(self.selection_start, min(end, len(self.value)))


class TextInput(TextControl):
    def __init__(self, attributes: dict[str, str] | None = None, value: str = "", input_type: str = "text"):
        super().__init__("input", attributes, value)
        self.input_type = input_type.lower()


class TextArea(TextControl):
    def __init__(self, attributes: dict[str, str] | None = None, value: str = ""):
        super().__init__("textarea", attributes, value)


@dataclass
class Selection:
    """Caret or range inside a single text node."""

    node: TextNode
    start: int
    end: int

    @property
    def collapsed(self) -> bool:
        return self.start == self.end


class Document:
    """One frame's document: element tree, focus and selection."""

    def __init__(self, *children: Node):
        self.body = Element("body", None, *children)
        self.selection: Selection | None = None
        self._active: Element | None = None
        self._listeners: dict[str, list[Callable[[Element], None]]] = {}

    def add_event_listener(self, event: str, callback: Callable[[Element], None]) -> None:
        listeners = self._listeners.setdefault(event, [])
        if callback not in listeners:
            listeners.append(callback)

    def remove_event_listener(self, event: str, callback: Callable[[Element], None]) -> None:
        listeners = self._listeners.get(event, [])
        if callback in listeners:
            listeners.remove(callback)

    def contains(self, node: Node | None) -> bool:
        return node is not None and node.root is self.body

    @property
    def active_element(self) -> Element | None:
        if self._active is not None and not self.contains(self._active):
            self._active = None
        return self._active

    def focus(self, element: Element) -> None:
        self._active = element
        for callback in list(self._listeners.get("focusin", [])):
            callback(element)


def is_editable(element: Node | None) -> bool:
    """Text areas, text-like inputs and content-editable regions qualify."""
    if not isinstance(element, Element):
        return False
    if isinstance(element, TextArea):
        return True
    if isinstance(element, TextInput):
        return element.input_type not in NON_TEXT_INPUT_TYPES
    return element.is_content_editable


def surface_role(element: Element) -> SurfaceRole:
    for attribute in SUBJECT_HINT_ATTRIBUTES:
        value = element.get_attribute(attribute)
        if value and SUBJECT_HINT in value.lower():
            return SurfaceRole.SUBJECT
    return SurfaceRole.BODY


def _inline_text(element: Element) -> str:
    parts = []
    for child in element.children:
        if isinstance(child, TextNode):
            parts.append(child.data)
        elif isinstance(child, LineBreak):
            parts.append("\n")
        elif isinstance(child, Element):
            parts.append(_inline_text(child))
    text = "".join(parts)
    # A trailing <br> only keeps an empty line open; it renders no text.
    if element.children and isinstance(element.children[-1], LineBreak):
        text = text[:-1]
    return text


def rendered_blocks(element: Element) -> list[str]:
    """Visible text of a rich region, one entry per rendered block."""
    blocks: list[str] = []
    inline: list[str] = []

    def flush() -> None:
        if inline:
            blocks.append("".join(inline))
            inline.clear()

    for child in element.children:
        if isinstance(child, Element) and child.tag in BLOCK_TAGS:
            flush()
            blocks.append(_inline_text(child))
        elif isinstance(child, TextNode):
            inline.append(child.data)
        elif isinstance(child, LineBreak):
            inline.append("\n")
        elif isinstance(child, Element):
            inline.append(_inline_text(child))
    flush()
    return blocks


def _text_fragment(text: str) -> list[Node]:
    """Text nodes separated by explicit line breaks."""
    nodes: list[Node] = []
    for index, line in enumerate(text.split("\n")):
        if index:
            nodes.append(LineBreak())
        if line:
            nodes.append(TextNode(line))
    return nodes


class PlainTextSurface:
    """``<input>``/``<textarea>``: value replacement and selection splicing."""

    def __init__(self, element: TextControl):
        self.element = element

    @property
    def role(self) -> SurfaceRole:
        return surface_role(self.element)

    def read_value(self) -> str:
        return self.element.value

    def write_value(self, text: str, paragraphs: list[str] | None = None) -> None:
        value = "\n\n".join(paragraphs) if paragraphs else text
        self.element.value = value
        self.element.set_selection(len(value))
        self.element.dispatch_event("input")

    def insert_at_cursor(self, text: str) -> None:
        element = self.element
        start, end = element.selection_start, element.selection_end
        element.value = element.value[:start] + text + element.value[end:]
        element.set_selection(start + len(text))
        element.dispatch_event("input")


class RichTextSurface:
    """Content-editable region: block rebuilding and caret fragments."""

    def __init__(self, element: Element, document: Document):
        self.element = element
        self.document = document

    @property
    def role(self) -> SurfaceRole:
        return surface_role(self.element)

    def read_value(self) -> str:
        return "\n".join(rendered_blocks(self.element))

    def write_value(self, text: str, paragraphs: list[str] | None = None) -> None:
        self.element.clear()
        for paragraph in paragraphs or [text]:
            block = Element("div")
            fragment = _text_fragment(paragraph)
            block.append(*(fragment or [LineBreak()]))
            self.element.append(block)
        self._collapse_to_end()
        self.element.dispatch_event("input")

    def insert_at_cursor(self, text: str) -> None:
        fragment = _text_fragment(text)
        selection = self.document.selection
        if selection is not None and self.element.contains(selection.node) and selection.node.parent is not None:
            node = selection.node
            after = node.data[selection.end:]
            node.data = node.data[: selection.start]
            tail = TextNode(after)
            node.parent.insert_after(node, *fragment, tail)
            self.document.selection = Selection(tail, 0, 0)
        else:
            self.element.append(*fragment)
            self._collapse_to_end()
        self.element.dispatch_event("input")

    def _collapse_to_end(self) -> None:
        last = None
        for last in self.element.iter_text_nodes():
            pass
        self.document.selection = Selection(last, len(last.data), len(last.data)) if last else None


def as_surface(element: Element | None, document: Document) -> EditableSurface | None:
    if isinstance(element, TextControl) and is_editable(element):
        return PlainTextSurface(element)
    if isinstance(element, Element) and element.is_content_editable:
        return RichTextSurface(element, document)
    return None
