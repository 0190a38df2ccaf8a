from __future__ import annotations

import json

import pytest

from plotly_table_sync.widget import PlotlyChartWidget, get_widget_data, make_payload, parse_widget_data


def test_parse_widget_data_reads_figure_and_mappings() -> None:
    payload = make_payload(
        [{"type": "scatter", "x": []}],
        {"title": {"text": "Prices"}},
        mappings=[{"table": 0, "data_columns": {"X": ["/plotly/data/0/x"]}}],
        is_user_set_template=True,
    )
    parsed = parse_widget_data(payload)

    assert parsed.data == [{"type": "scatter", "x": []}]
    assert parsed.layout == {"title": {"text": "Prices"}}
    assert parsed.is_user_set_template is True
    assert len(parsed.mappings) == 1
    assert parsed.mappings[0].table == 0
    assert parsed.mappings[0].data_columns == {"X": ["/plotly/data/0/x"]}


def test_missing_deephaven_section_means_no_bindings() -> None:
    parsed = parse_widget_data(json.dumps({"figure": {"plotly": {"data": []}}}))
    assert parsed.mappings == ()
    assert parsed.layout == {}
    assert parsed.is_user_set_template is False


@pytest.mark.parametrize(
    "payload, message",
    [
        ("not json", "not valid JSON"),
        (json.dumps([]), "no figure.plotly"),
        (json.dumps({"figure": {}}), "no figure.plotly"),
        (json.dumps({"figure": {"plotly": {}, "deephaven": {"mappings": {}}}}), "must be a list"),
        (json.dumps({"figure": {"plotly": {}, "deephaven": {"mappings": [{"data_columns": {}}]}}}), "Malformed"),
        (json.dumps({"figure": {"plotly": {}, "deephaven": {"mappings": [{"table": "0"}]}}}), "must be an int"),
        (
            json.dumps({"figure": {"plotly": {}, "deephaven": {"mappings": [{"table": 0, "data_columns": ["X"]}]}}}),
            "must be an object",
        ),
    ],
)
def test_malformed_payloads_raise_value_error(payload: str, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        parse_widget_data(payload)


def test_send_notifies_message_observers_once_per_payload() -> None:
    widget = PlotlyChartWidget(make_payload([]))
    seen: list[str] = []
    remove = widget.on_message(lambda w: seen.append(w.get_data_as_string()))

    second = make_payload([{"type": "bar"}])
    widget.send(second, exported_objects=["t"])
    widget.send(second)

    assert seen == [second, second]
    assert widget.exported_objects == ["t"]
    assert get_widget_data(widget).data == [{"type": "bar"}]

    remove()
    widget.send(make_payload([]))
    assert len(seen) == 2
