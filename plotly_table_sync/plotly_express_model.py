"""Chart model that keeps a Plotly Express figure in sync with live tables.

Purpose
-------
:class:`PlotlyExpressChartModel` is the object a rendering surface talks
to. It owns the chart document (``data`` + ``layout``), derives the table
bindings declared by its widget payload, subscribes to those tables while
it has observers, and writes every table update into the bound document
locations before notifying observers with the full trace list.

Concepts and structure
----------------------
- ``PlotlyChartWidget`` (``widget.py``) delivers the figure payload and
  exported tables. A new payload triggers stop -> init -> start.
- ``get_data_mappings`` (``bindings.py``) builds the binding map.
- ``SubscriptionManager`` (``subscriptions.py``) owns subscriptions and the
  listening state machine.
- ``UpdateSynchronizer`` (``synchronizer.py``) writes column values into
  the document.
- ``build_template``/``apply_colorway_to_data`` (``colorway.py``) apply
  the base theme once per initialization.

Important gotchas
-----------------
- ``get_data``/``get_layout`` return the live document, not copies. Use
  :meth:`snapshot` for a stable copy.
- Everything runs on one thread of control. Hosts that deliver table
  events from other threads must serialize access themselves.
- ``subscribe`` schedules :meth:`start_listening` as a task when an asyncio
  loop is running; await :meth:`wait_for_pending` to let it settle. With no
  running loop it runs to completion before ``subscribe`` returns.

Examples
--------
>>> from plotly_table_sync import (  # doctest: +SKIP
...     Column, ExportedObject, InMemoryTable, PlotlyChartWidget,
...     PlotlyExpressChartModel, TableUpdate, make_payload)
>>> table = InMemoryTable([Column("X"), Column("Y")])  # doctest: +SKIP
>>> payload = make_payload(  # doctest: +SKIP
...     [{"type": "scatter", "x": [], "y": []}],
...     mappings=[{"table": 0, "data_columns": {"X": ["/plotly/data/0/x"]}}])
>>> model = PlotlyExpressChartModel(PlotlyChartWidget(payload, [ExportedObject(table)]))  # doctest: +SKIP
>>> model.subscribe(print)  # doctest: +SKIP
>>> table.apply(TableUpdate(added={0: {"X": 1, "Y": 2}}))  # doctest: +SKIP
"""

from __future__ import annotations

import asyncio
import logging
import types
from collections.abc import Coroutine, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

from .bindings import BindingMap, binding_count, get_data_mappings
from .chart_data import ValueUnwrapper, unwrap_value
from .chart_model import ChartListener, ChartModel
from .colorway import DEFAULT_COLOR_PATHS, apply_colorway_to_data, build_template, declared_colorway
from .document_pointer import DEFAULT_ROOT_SEGMENT
from .snapshot import ChartSnapshot
from .subscriptions import ListeningState, SubscriptionManager
from .synchronizer import UpdateSynchronizer
from .table_source import TableEvent
from .theme import DEFAULT_THEME, ChartTheme, make_default_layout
from .widget import PlotlyChartWidget, get_widget_data

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


@dataclass(frozen=True)
class SyncOptions:
    """Configuration for :class:`PlotlyExpressChartModel`.

    Parameters
    ----------
    root_segment : str, optional
        Leading segment of destination pointers naming the document root.
    color_paths : tuple[tuple[str, ...], ...], optional
        Trace fields remapped when the colorway changes.
    """

    root_segment: str = DEFAULT_ROOT_SEGMENT
    color_paths: tuple[tuple[str, ...], ...] = DEFAULT_COLOR_PATHS

    def __post_init__(self) -> None:
        """Validate option values."""
        if "/" in self.root_segment:
            raise ValueError("root_segment must be a single pointer segment")
        paths = tuple(tuple(path) for path in self.color_paths)
        if any(not path or not all(isinstance(key, str) for key in path) for path in paths):
            raise ValueError("color_paths entries must be non-empty sequences of field names")
        object.__setattr__(self, "color_paths", paths)


class PlotlyExpressChartModel(ChartModel):
    """Chart model bound to a :class:`PlotlyChartWidget` and its tables.

    Parameters
    ----------
    widget : PlotlyChartWidget
        Payload transport; its messages re-initialize the model.
    theme : ChartTheme, optional
        Base theme for the layout template.
    options : SyncOptions, optional
        Pointer and colorway configuration.
    unwrap : callable, optional
        Cell-to-plain-value transform for column data.
    """

    def __init__(
        self,
        widget: PlotlyChartWidget,
        theme: ChartTheme = DEFAULT_THEME,
        *,
        options: Optional[SyncOptions] = None,
        unwrap: ValueUnwrapper = unwrap_value,
    ) -> None:
        super().__init__()
        self.widget = widget
        self.theme = theme
        self.options = options if options is not None else SyncOptions()

        self.data: List[Dict[str, Any]] = []
        self.plotly_layout: Dict[str, Any] = {}
        self.layout: Dict[str, Any] = {"template": {"layout": make_default_layout(theme)}}

        self._binding_map: BindingMap = {}
        self._subscriptions = SubscriptionManager()
        self._synchronizer = UpdateSynchronizer(
            self._document_root, unwrap=unwrap, root_segment=self.options.root_segment
        )
        self._init_generation = 0
        self._pending: Set[asyncio.Task] = set()
        self._unsent_update = False

        self.title = self.get_default_title()
        self._remove_message_listener = widget.on_message(self._on_widget_message)

    # --- Document ---

    def _document_root(self) -> Dict[str, Any]:
        return {"data": self.data, "layout": self.layout}

    def get_data(self) -> List[Dict[str, Any]]:
        return self.data

    def get_layout(self) -> Dict[str, Any]:
        return self.layout

    def get_default_title(self) -> str:
        title = self.plotly_layout.get("title")
        if isinstance(title, Mapping):
            title = title.get("text")
        return str(title) if title else ""

    @property
    def binding_map(self) -> Mapping[Any, Mapping[str, Sequence[str]]]:
        """Read-only view of the current binding map."""
        return types.MappingProxyType(self._binding_map)

    async def init(self, widget: Optional[PlotlyChartWidget] = None) -> bool:
        """Load the figure and bindings from ``widget`` (default: the current one).

        Only the most recently issued ``init`` applies its result; an older
        call that finishes later is discarded.

        Returns
        -------
        bool
            ``True`` if the document and bindings were replaced.

        Raises
        ------
        ValueError
            If the widget payload is malformed.
        IndexError
            If a mapping references a table that was not exported.
        """
        if widget is not None:
            self.widget = widget
        widget = self.widget
        self._init_generation += 1
        generation = self._init_generation

        widget_data = get_widget_data(widget)
        binding_map = await get_data_mappings(widget, widget_data)
        if generation != self._init_generation:
            logger.debug(f"init(generation={generation}) superseded by {self._init_generation}; discarding")
            return False

        plotly_layout = widget_data.layout
        data = widget_data.data
        template = build_template(
            self.theme, plotly_layout, is_user_set_template=widget_data.is_user_set_template
        )
        apply_colorway_to_data(
            template["layout"].get("colorway") or [],
            declared_colorway(plotly_layout),
            data,
            color_paths=self.options.color_paths,
        )

        self.data = data
        self.plotly_layout = plotly_layout
        self.layout = {**plotly_layout, "template": template}
        self._binding_map = binding_map
        # Document titles ride along with the next update; only set_title notifies.
        self.title = self.get_default_title()
        logger.debug(f"init(generation={generation}) tables={len(binding_map)} bindings={binding_count(binding_map)}")
        return True

    # --- Listening ---

    @property
    def state(self) -> ListeningState:
        return self._subscriptions.state

    @property
    def is_listening(self) -> bool:
        return self._subscriptions.is_listening

    @property
    def subscriptions(self) -> Dict[Any, Any]:
        return self._subscriptions.subscriptions

    async def start_listening(self, generation: Optional[int] = None) -> bool:
        """Subscribe to every bound table, initializing first if needed.

        Parameters
        ----------
        generation : int, optional
            Token from ``SubscriptionManager.begin`` taken when the start was
            requested. A stop issued after that point cancels this start.

        Returns
        -------
        bool
            ``False`` if a later stop or start superseded this call.
        """
        if generation is None:
            generation = self._subscriptions.begin()
        if not self._binding_map:
            try:
                await self.init()
            except Exception:
                self._subscriptions.fail(generation)
                raise
        self._unsent_update = False
        started = self._subscriptions.start(generation, self._binding_map, self._handle_table_updated)
        if started and self._unsent_update:
            self._unsent_update = False
            self.fire_update(self.data)
        return started

    def stop_listening(self) -> None:
        self._subscriptions.stop()

    def _handle_table_updated(self, table: Any, event: TableEvent) -> None:
        applied = self._synchronizer.apply(
            event,
            self._subscriptions.chart_data_for(table),
            self._binding_map.get(table),
        )
        if not applied:
            return
        if self.is_listening:
            self.fire_update(self.data)
        else:
            # Initial rows arrive while subscriptions are still opening.
            self._unsent_update = True

    # --- Observers ---

    def subscribe(self, callback: ChartListener) -> None:
        """Register ``callback`` and start listening if not already."""
        super().subscribe(callback)
        if self.state not in (ListeningState.LISTENING, ListeningState.INITIALIZING):
            self._schedule(self.start_listening(self._subscriptions.begin()))

    def unsubscribe(self, callback: ChartListener) -> None:
        """Remove ``callback``; stop listening once no observers remain."""
        super().unsubscribe(callback)
        if not self._listeners:
            self.stop_listening()

    def _on_widget_message(self, widget: PlotlyChartWidget) -> None:
        self._schedule(self._reload(widget))

    async def _reload(self, widget: PlotlyChartWidget) -> None:
        self.stop_listening()
        try:
            applied = await self.init(widget)
            if applied and self._listeners:
                await self.start_listening()
        except Exception as exc:
            logger.exception("Failed to re-initialize chart from widget message")
            self.fire_error(exc)

    # --- Scheduling ---

    def _schedule(self, coro: Coroutine[Any, Any, Any]) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(coro)
            return None
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Chart model task failed", exc_info=exc)
            self.fire_error(exc)

    async def wait_for_pending(self) -> None:
        """Wait until every scheduled start/reload task has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def close(self) -> None:
        """Detach from the widget, stop listening and drop all observers."""
        self._remove_message_listener()
        self.stop_listening()
        self._listeners.clear()

    # --- Geometry ---

    def _margin(self, *sides: str) -> float:
        margin = self.layout.get("margin") or {}
        return sum(float(margin.get(side) or 0) for side in sides)

    def get_plot_width(self) -> float:
        """Return the drawable width: rect width minus left/right margins, >= 0."""
        rect = self.get_rect()
        if rect is None or not rect.width:
            return 0
        return max(rect.width - self._margin("l", "r"), 0)

    def get_plot_height(self) -> float:
        """Return the drawable height: rect height minus top/bottom margins, >= 0."""
        rect = self.get_rect()
        if rect is None or not rect.height:
            return 0
        return max(rect.height - self._margin("t", "b"), 0)

    # --- Introspection ---

    def snapshot(self) -> ChartSnapshot:
        return ChartSnapshot.capture(
            data=self.data,
            layout=self.layout,
            title=self.title,
            state=self.state,
            binding_map=self._binding_map,
            rect=self.get_rect(),
        )


__all__ = ["PlotlyExpressChartModel", "SyncOptions"]
