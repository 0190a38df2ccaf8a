"""Binding map construction from widget column mappings.

A binding map answers "for this table, which document locations does each
column feed?". It is rebuilt wholesale each time a figure is (re)initialized:

``{table: {column_name: [destination, ...]}}``

Tables are dict keys, so the same fetched table referenced by several
mapping entries collapses into one entry whose column maps are merged.
Destinations keep declaration order and drop duplicates.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from typing import Any, Dict, List, Optional

from .widget import ColumnMapping, PlotlyChartWidget, WidgetData, get_widget_data

ColumnBindings = Dict[str, List[str]]
BindingMap = Dict[Any, ColumnBindings]


def build_binding_map(mappings: Sequence[ColumnMapping], tables: Sequence[Any]) -> BindingMap:
    """Build a binding map from parsed mappings and fetched tables.

    Parameters
    ----------
    mappings : Sequence[ColumnMapping]
        Declarations from the widget payload.
    tables : Sequence
        Fetched tables, indexed by ``ColumnMapping.table``.

    Raises
    ------
    IndexError
        If a mapping references a table index with no fetched table.
    """
    binding_map: BindingMap = {}
    for mapping in mappings:
        if not 0 <= mapping.table < len(tables):
            raise IndexError(
                f"Column mapping references table {mapping.table}, "
                f"but only {len(tables)} tables were exported"
            )
        table = tables[mapping.table]
        columns = binding_map.setdefault(table, {})
        for column_name, paths in mapping.data_columns.items():
            destinations = columns.setdefault(column_name, [])
            for path in paths:
                if path not in destinations:
                    destinations.append(path)
    return binding_map


async def fetch_tables(widget: PlotlyChartWidget) -> List[Any]:
    """Resolve every exported object of ``widget`` concurrently."""
    return list(await asyncio.gather(*(obj.fetch() for obj in widget.exported_objects)))


async def get_data_mappings(widget: PlotlyChartWidget, widget_data: Optional[WidgetData] = None) -> BindingMap:
    """Fetch the widget's tables and build its binding map.

    ``widget_data`` may be passed when the payload was already parsed.
    """
    if widget_data is None:
        widget_data = get_widget_data(widget)
    if not widget_data.mappings:
        return {}
    tables = await fetch_tables(widget)
    return build_binding_map(widget_data.mappings, tables)


def binding_count(binding_map: Mapping[Any, Mapping[str, Sequence[str]]]) -> int:
    """Return the total number of (table, column, destination) bindings."""
    return sum(len(paths) for columns in binding_map.values() for paths in columns.values())


__all__ = [
    "BindingMap",
    "ColumnBindings",
    "binding_count",
    "build_binding_map",
    "fetch_tables",
    "get_data_mappings",
]
