"""Render a synchronized chart model into a Plotly ``FigureWidget``.

:class:`FigureWidgetView` is a thin rendering surface: it observes a
:class:`PlotlyExpressChartModel` and copies the model's document into a
``plotly.graph_objects.FigureWidget`` whenever the model reports an update.

Traces are updated in place when the trace count and types still match, so
the frontend receives property diffs instead of a full redraw. Bursty table
updates can be coalesced with ``render_every_ms``.

Examples
--------
>>> view = FigureWidgetView(model, render_every_ms=100)  # doctest: +SKIP
>>> view.attach()  # doctest: +SKIP
>>> view.figure_widget  # doctest: +SKIP
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import plotly.graph_objects as go

from .chart_model import ChartEvent, ChartModel
from .coalescing import CoalescingScheduler


def _trace_type(spec: Dict[str, Any]) -> str:
    return str(spec.get("type") or "scatter")


def _without_type(spec: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in spec.items() if key != "type"}


class FigureWidgetView:
    """Mirror a chart model into a ``FigureWidget``.

    Parameters
    ----------
    model : ChartModel
        Model to observe, typically a ``PlotlyExpressChartModel``.
    figure_widget : plotly.graph_objects.FigureWidget, optional
        Target widget; a new one is created when omitted.
    render_every_ms : int, optional
        Coalesce update renders to at most one per interval.
    """

    def __init__(
        self,
        model: ChartModel,
        figure_widget: Optional[go.FigureWidget] = None,
        *,
        render_every_ms: Optional[int] = None,
    ) -> None:
        self.model = model
        self.figure_widget = figure_widget if figure_widget is not None else go.FigureWidget()
        self._scheduler: Optional[CoalescingScheduler] = (
            CoalescingScheduler(self.render, every_ms=render_every_ms) if render_every_ms else None
        )
        self._attached = False
        self.render_count = 0

    @property
    def is_attached(self) -> bool:
        return self._attached

    def attach(self) -> None:
        """Subscribe to the model and render its current document."""
        if self._attached:
            return
        self._attached = True
        self.model.subscribe(self._on_chart_event)
        self.render()

    def detach(self) -> None:
        if not self._attached:
            return
        self._attached = False
        self.model.unsubscribe(self._on_chart_event)
        if self._scheduler is not None:
            self._scheduler.cancel()

    def _on_chart_event(self, event: ChartEvent) -> None:
        if event.type != ChartModel.EVENT_UPDATED:
            return
        if self._scheduler is not None:
            self._scheduler()
        else:
            self.render()

    def _traces_match(self, data: Sequence[Dict[str, Any]]) -> bool:
        traces = self.figure_widget.data
        if len(traces) != len(data):
            return False
        return all(trace.type == _trace_type(spec) for trace, spec in zip(traces, data))

    def render(self) -> None:
        """Copy the model's data and layout into the figure widget."""
        fig = self.figure_widget
        data: List[Dict[str, Any]] = list(self.model.get_data())
        layout = self.model.get_layout()

        if not self._traces_match(data):
            # Adding or removing traces is not allowed inside batch_update.
            fig.data = ()
            fig.add_traces([dict(spec) for spec in data])
            with fig.batch_update():
                fig.update_layout(layout, overwrite=True)
        else:
            with fig.batch_update():
                for trace, spec in zip(fig.data, data):
                    trace.update(_without_type(spec), overwrite=True)
                fig.update_layout(layout, overwrite=True)
        self.render_count += 1

    def sync_dimensions(self) -> bool:
        """Report the widget's declared ``layout.width``/``height`` to the model.

        Returns ``False`` when either size is unset.
        """
        width = self.figure_widget.layout.width
        height = self.figure_widget.layout.height
        if width is None or height is None:
            return False
        self.model.set_dimensions((width, height))
        return True


__all__ = ["FigureWidgetView"]
