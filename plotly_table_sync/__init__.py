"""Top-level public API for the ``plotly_table_sync`` package.

Keeps a Plotly Express figure synchronized with live, streaming tables:

>>> from plotly_table_sync import PlotlyExpressChartModel, PlotlyChartWidget  # doctest: +SKIP

The model is the main entry point. Lower-level building blocks (pointer
resolution, binding maps, the subscription manager and the colorway
normalizer) are exported for hosts that assemble their own model.
"""

from .bindings import BindingMap, binding_count, build_binding_map, get_data_mappings
from .chart_data import ChartData, TableUpdate, unwrap_value
from .chart_model import ChartEvent, ChartModel, ChartRect
from .coalescing import CoalescingScheduler
from .colorway import DEFAULT_COLOR_PATHS, apply_colorway_to_data, build_template
from .document_pointer import DocumentSlot, parse_pointer, resolve_slot
from .figure_widget_view import FigureWidgetView
from .plotly_express_model import PlotlyExpressChartModel, SyncOptions
from .snapshot import ChartSnapshot
from .subscriptions import ListeningState, SubscriptionManager
from .synchronizer import UpdateSynchronizer
from .table_source import (
    EVENT_UPDATED,
    Column,
    ExportedObject,
    InMemoryTable,
    InMemoryTableSubscription,
    TableEvent,
)
from .theme import DEFAULT_THEME, ChartTheme, make_default_layout
from .widget import PlotlyChartWidget, WidgetData, get_widget_data, make_payload, parse_widget_data

__all__ = [
    "BindingMap",
    "ChartData",
    "ChartEvent",
    "ChartModel",
    "ChartRect",
    "ChartSnapshot",
    "ChartTheme",
    "CoalescingScheduler",
    "Column",
    "DEFAULT_COLOR_PATHS",
    "DEFAULT_THEME",
    "DocumentSlot",
    "EVENT_UPDATED",
    "ExportedObject",
    "FigureWidgetView",
    "InMemoryTable",
    "InMemoryTableSubscription",
    "ListeningState",
    "PlotlyChartWidget",
    "PlotlyExpressChartModel",
    "SubscriptionManager",
    "SyncOptions",
    "TableEvent",
    "TableUpdate",
    "UpdateSynchronizer",
    "WidgetData",
    "apply_colorway_to_data",
    "binding_count",
    "build_binding_map",
    "build_template",
    "get_data_mappings",
    "get_widget_data",
    "make_default_layout",
    "make_payload",
    "parse_pointer",
    "parse_widget_data",
    "resolve_slot",
    "unwrap_value",
]
