from __future__ import annotations

import pytest

from plotly_table_sync.document_pointer import parse_pointer, resolve_slot


def _document() -> dict:
    return {
        "data": [{"type": "scatter", "x": [0], "marker": {"color": "red"}}, {"type": "bar", "y": []}],
        "layout": {"title": {"text": "t"}},
    }


def test_parse_pointer_strips_root_and_empty_segments() -> None:
    assert parse_pointer("/plotly/data/0/x") == ("data", "0", "x")
    assert parse_pointer("data//0/x/") == ("data", "0", "x")


def test_parse_pointer_only_strips_leading_root_segment() -> None:
    assert parse_pointer("/plotly/data/0/meta/plotly") == ("data", "0", "meta", "plotly")


def test_parse_pointer_decodes_json_pointer_escapes() -> None:
    assert parse_pointer("/plotly/layout/a~1b/c~0d") == ("layout", "a/b", "c~d")


def test_parse_pointer_rejects_non_strings() -> None:
    with pytest.raises(TypeError, match="must be a str"):
        parse_pointer(3)  # type: ignore[arg-type]


def test_resolve_slot_writes_nested_field() -> None:
    doc = _document()
    slot = resolve_slot(doc, "/plotly/data/0/marker/color")
    assert slot is not None
    assert slot.get() == "red"
    slot.set("blue")
    assert doc["data"][0]["marker"]["color"] == "blue"


def test_resolve_slot_allows_missing_leaf_on_object_node() -> None:
    doc = _document()
    slot = resolve_slot(doc, "/plotly/data/1/x")
    assert slot is not None
    slot.set([1, 2])
    assert doc["data"][1]["x"] == [1, 2]


def test_resolve_slot_addresses_array_elements() -> None:
    doc = _document()
    slot = resolve_slot(doc, "/plotly/data/0/x/0")
    assert slot is not None
    slot.set(42)
    assert doc["data"][0]["x"] == [42]


@pytest.mark.parametrize(
    "path",
    [
        "/plotly/data/7/x",
        "/plotly/data/zero/x",
        "/plotly/missing/0/x",
        "/plotly/layout/title/text/deeper",
        "/plotly/data/0/x/3",
        "/plotly",
        "",
    ],
)
def test_resolve_slot_returns_none_for_unresolvable_paths(path: str) -> None:
    doc = _document()
    before = repr(doc)
    assert resolve_slot(doc, path) is None
    assert repr(doc) == before


def test_resolve_slot_honours_custom_root_segment() -> None:
    doc = _document()
    slot = resolve_slot(doc, "/figure/data/1/y", root_segment="figure")
    assert slot is not None
    slot.set([3])
    assert doc["data"][1]["y"] == [3]
