"""Figure payload transport for Plotly Express chart widgets.

A server-side process publishes a chart as a JSON payload plus a list of
exported table references. :class:`PlotlyChartWidget` holds both as
traitlets so the model can observe replacements the same way notebook
widgets observe trait changes.

Payload shape::

    {"figure": {"plotly": {"data": [...], "layout": {...}},
                "deephaven": {"mappings": [{"table": 0,
                                            "data_columns": {"X": ["/plotly/data/0/x"]}}],
                              "is_user_set_template": false}}}
"""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Dict, List

import traitlets


@dataclass(frozen=True)
class ColumnMapping:
    """One ``mappings`` entry: a table index and its column destinations."""

    table: int
    data_columns: Dict[str, List[str]]


@dataclass(frozen=True)
class WidgetData:
    """Parsed widget payload.

    Parameters
    ----------
    data : list
        Plotly trace dicts (``figure.plotly.data``).
    layout : dict
        Plotly layout dict (``figure.plotly.layout``).
    mappings : tuple[ColumnMapping, ...]
        Column-to-destination declarations.
    is_user_set_template : bool
        Whether the figure author picked a template explicitly.
    """

    data: List[Dict[str, Any]]
    layout: Dict[str, Any]
    mappings: tuple[ColumnMapping, ...] = ()
    is_user_set_template: bool = False
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)


class PlotlyChartWidget(traitlets.HasTraits):
    """Transport object carrying a figure payload and its exported tables.

    Assigning a new payload through :meth:`send` notifies every callback
    registered with :meth:`on_message`.
    """

    data_string = traitlets.Unicode("")
    exported_objects = traitlets.List()
    revision = traitlets.Int(0)

    def __init__(self, data_string: str = "", exported_objects: Sequence[Any] = ()) -> None:
        super().__init__(data_string=data_string, exported_objects=list(exported_objects))

    def get_data_as_string(self) -> str:
        return self.data_string

    def send(self, data_string: str, exported_objects: Sequence[Any] | None = None) -> None:
        """Replace the payload, then notify message observers once.

        Observers fire even when the payload text is unchanged.
        """
        with self.hold_trait_notifications():
            if exported_objects is not None:
                self.exported_objects = list(exported_objects)
            self.data_string = data_string
            self.revision += 1

    def on_message(self, callback: Callable[["PlotlyChartWidget"], Any]) -> Callable[[], None]:
        """Call ``callback(widget)`` on each new payload; return the remover."""

        def _on_change(change: Dict[str, Any]) -> None:
            callback(self)

        self.observe(_on_change, names="revision")

        def _remove() -> None:
            self.unobserve(_on_change, names="revision")

        return _remove


def _parse_mappings(raw: Any) -> tuple[ColumnMapping, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ValueError("figure.deephaven.mappings must be a list")
    mappings = []
    for entry in raw:
        try:
            table = entry["table"]
            data_columns = entry.get("data_columns") or {}
        except (AttributeError, TypeError, KeyError) as exc:
            raise ValueError(f"Malformed column mapping entry: {entry!r}") from exc
        if not isinstance(table, int) or isinstance(table, bool):
            raise ValueError(f"Mapping table index must be an int, got {table!r}")
        if not isinstance(data_columns, dict):
            raise ValueError(f"data_columns must be an object, got {data_columns!r}")
        columns = {str(name): [str(path) for path in paths] for name, paths in data_columns.items()}
        mappings.append(ColumnMapping(table=table, data_columns=columns))
    return tuple(mappings)


def parse_widget_data(data_string: str) -> WidgetData:
    """Parse a JSON payload into :class:`WidgetData`.

    Raises
    ------
    ValueError
        If the payload is not JSON or has no ``figure.plotly`` section.
    """
    try:
        payload = json.loads(data_string)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Widget payload is not valid JSON: {exc}") from exc
    figure = payload.get("figure") if isinstance(payload, dict) else None
    plotly = figure.get("plotly") if isinstance(figure, dict) else None
    if not isinstance(plotly, dict):
        raise ValueError("Widget payload has no figure.plotly section")

    deephaven = figure.get("deephaven") or {}
    return WidgetData(
        data=list(plotly.get("data") or []),
        layout=dict(plotly.get("layout") or {}),
        mappings=_parse_mappings(deephaven.get("mappings")),
        is_user_set_template=bool(deephaven.get("is_user_set_template", False)),
        raw=payload,
    )


def get_widget_data(widget: PlotlyChartWidget) -> WidgetData:
    """Return the parsed payload currently held by ``widget``."""
    return parse_widget_data(widget.get_data_as_string())


def make_payload(
    data: Sequence[Dict[str, Any]],
    layout: Dict[str, Any] | None = None,
    *,
    mappings: Sequence[Dict[str, Any]] = (),
    is_user_set_template: bool = False,
) -> str:
    """Serialize a figure and its column mappings into a widget payload."""
    return json.dumps(
        {
            "figure": {
                "plotly": {"data": list(data), "layout": dict(layout or {})},
                "deephaven": {
                    "mappings": list(mappings),
                    "is_user_set_template": is_user_set_template,
                },
            }
        }
    )


__all__ = [
    "ColumnMapping",
    "PlotlyChartWidget",
    "WidgetData",
    "get_widget_data",
    "make_payload",
    "parse_widget_data",
]
