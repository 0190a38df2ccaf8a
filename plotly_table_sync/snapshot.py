"""Immutable snapshots of chart model state.

A :class:`ChartSnapshot` deep-copies the document so it can be compared or
inspected later without being affected by subsequent table updates.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .chart_model import ChartRect
from .subscriptions import ListeningState


@dataclass(frozen=True)
class ChartSnapshot:
    """Point-in-time copy of a :class:`PlotlyExpressChartModel`.

    Parameters
    ----------
    data : list[dict]
        Deep copy of the trace list.
    layout : dict
        Deep copy of the effective layout, template included.
    title : str
        Model title.
    state : ListeningState
        Subscription state when the snapshot was taken.
    bindings : dict[str, dict[str, tuple[str, ...]]]
        Binding map keyed by ``repr(table)``.
    rect : ChartRect or None
        Last reported host rectangle.
    """

    data: List[Dict[str, Any]]
    layout: Dict[str, Any]
    title: str
    state: ListeningState
    bindings: Dict[str, Dict[str, tuple[str, ...]]]
    rect: Optional[ChartRect] = None

    @property
    def is_listening(self) -> bool:
        return self.state is ListeningState.LISTENING

    @classmethod
    def capture(
        cls,
        *,
        data: List[Dict[str, Any]],
        layout: Dict[str, Any],
        title: str,
        state: ListeningState,
        binding_map: Mapping[Any, Mapping[str, Any]],
        rect: Optional[ChartRect],
    ) -> "ChartSnapshot":
        bindings = {
            repr(table): {column: tuple(paths) for column, paths in columns.items()}
            for table, columns in binding_map.items()
        }
        return cls(
            data=copy.deepcopy(data),
            layout=copy.deepcopy(layout),
            title=title,
            state=state,
            bindings=bindings,
            rect=rect,
        )


__all__ = ["ChartSnapshot"]
