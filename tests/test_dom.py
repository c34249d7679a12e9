from ekko.core.ports import EditableSurface, SurfaceRole
from ekko.dom import (
    Document,
    Element,
    LineBreak,
    PlainTextSurface,
    RichTextSurface,
    Selection,
    TextArea,
    TextInput,
    TextNode,
    as_surface,
    is_editable,
    rendered_blocks,
)


def test_editable_qualification():
    assert is_editable(TextArea())
    assert is_editable(TextInput(input_type="email"))
    assert not is_editable(TextInput(input_type="checkbox"))
    assert not is_editable(TextInput(input_type="submit"))
    assert is_editable(Element("div", {"contenteditable": "true"}))
    assert not is_editable(Element("div", {"contenteditable": "false"}))
    assert not is_editable(Element("div"))
    assert not is_editable(None)


def test_content_editable_is_inherited():
    inner = Element("span")
    Element("div", {"contenteditable": ""}, inner)
    assert is_editable(inner)


def test_surfaces_implement_capability_interface():
    document = Document()
    assert isinstance(as_surface(TextArea(), document), EditableSurface)
    assert isinstance(as_surface(Element("div", {"contenteditable": "true"}), document), RichTextSurface)
    assert as_surface(Element("div"), document) is None
    assert as_surface(TextInput({"placeholder": "Subject"}), document).role is SurfaceRole.SUBJECT


def test_plain_insert_splices_selection():
    field = TextInput(value="Hello world")
    field.set_selection(6, 11)
    surface = PlainTextSurface(field)

    surface.insert_at_cursor("there")

    assert field.value == "Hello there"
    assert (field.selection_start, field.selection_end) == (11, 11)
    assert field.dispatched_events == ["input"]


def test_plain_write_joins_paragraphs():
    field = TextArea(value="old")
    PlainTextSurface(field).write_value("ignored", ["One", "Two"])
    assert field.value == "One\n\nTwo"
    assert field.dispatched_events == ["input"]


def test_rich_write_rebuilds_one_block_per_paragraph():
    region = Element("div", {"contenteditable": "true"}, TextNode("stale"))
    document = Document(region)

    RichTextSurface(region, document).write_value("a\n\nb\nc", ["a", "b\nc"])

    assert rendered_blocks(region) == ["a", "b\nc"]
    assert [child.tag for child in region.children] == ["div", "div"]
    assert document.selection.node.data == "c"
    assert document.selection.collapsed
    assert document.selection.start == 1
    assert region.dispatched_events == ["input"]


def test_rich_insert_replaces_selected_range():
    node = TextNode("Hello world")
    region = Element("div", {"contenteditable": "true"}, node)
    document = Document(region)
    document.selection = Selection(node, 6, 11)

    RichTextSurface(region, document).insert_at_cursor("there")

    assert rendered_blocks(region) == ["Hello there"]


def test_rich_insert_appends_without_selection_inside():
    region = Element("div", {"contenteditable": "true"}, TextNode("Hi"))
    elsewhere = TextNode("outside")
    document = Document(region, Element("p", None, elsewhere))
    document.selection = Selection(elsewhere, 0, 0)

    RichTextSurface(region, document).insert_at_cursor(" all\nsoon")

    assert RichTextSurface(region, document).read_value() == "Hi all\nsoon"
    assert elsewhere.data == "outside"


def test_trailing_line_break_renders_no_text():
    region = Element("div", None, Element("div", None, TextNode("x"), LineBreak()), Element("div", None, LineBreak()))
    assert rendered_blocks(region) == ["x", ""]


def test_active_element_cleared_when_detached():
    field = TextArea()
    document = Document(field)
    document.focus(field)
    assert document.active_element is field

    field.remove()
    assert document.active_element is None
