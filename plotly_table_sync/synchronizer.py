"""Write table update events into bound chart document locations."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Dict, Optional

from .chart_data import ChartData, TableUpdate, ValueUnwrapper, unwrap_value
from .document_pointer import DEFAULT_ROOT_SEGMENT, resolve_slot
from .table_source import TableEvent

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


class UpdateSynchronizer:
    """Apply one table update event to the chart document.

    Parameters
    ----------
    document : callable
        Returns the current document root (``{"data": ..., "layout": ...}``).
        Called per event so a re-initialized document is always targeted.
    unwrap : callable, optional
        Per-cell transform handed to :meth:`ChartData.get_column`.
    root_segment : str, optional
        Leading pointer segment stripped before resolution.
    """

    def __init__(
        self,
        document: Callable[[], Any],
        *,
        unwrap: ValueUnwrapper = unwrap_value,
        root_segment: str = DEFAULT_ROOT_SEGMENT,
    ) -> None:
        self._document = document
        self._unwrap = unwrap
        self._root_segment = root_segment

    def apply(
        self,
        event: TableEvent,
        chart_data: Optional[ChartData],
        column_bindings: Optional[Mapping[str, Sequence[str]]],
    ) -> bool:
        """Fold ``event`` into ``chart_data`` and write every bound column.

        Returns
        -------
        bool
            ``False`` when the event was discarded because the accumulator
            or bindings were missing (a stop/start race); ``True`` otherwise.
        """
        if chart_data is None or column_bindings is None:
            logger.warning("Unknown chart data or column bindings for this event. Skipping update")
            return False

        update = event.detail if isinstance(event.detail, TableUpdate) else TableUpdate()
        chart_data.update(update)

        root = self._document()
        written: Dict[str, int] = {}
        for column, destinations in column_bindings.items():
            if column not in chart_data:
                logger.warning(f"Column {column!r} is not on {chart_data.table!r}. Skipping {len(destinations)} destinations")
                continue
            values = chart_data.get_column(column, self._unwrap, update)
            for destination in destinations:
                slot = resolve_slot(root, destination, root_segment=self._root_segment)
                if slot is None:
                    logger.warning(f"Destination {destination!r} does not resolve in the chart document. Skipping")
                    continue
                # Every destination of a column shares one materialized list.
                slot.set(values)
                written[column] = written.get(column, 0) + 1
        logger.debug(f"apply(rows={len(chart_data)}) written={written}")
        return True


__all__ = ["UpdateSynchronizer"]
