"""Subscription lifecycle for tables bound into a chart document.

Purpose
-------
:class:`SubscriptionManager` owns, per bound table, one :class:`ChartData`
accumulator, one column-scoped subscription and the cleanup actions for the
update listeners registered on it.

State machine
-------------
``UNINITIALIZED -> INITIALIZING -> LISTENING -> STOPPED`` (and back to
``INITIALIZING``/``LISTENING`` on the next start). Every :meth:`begin` and
:meth:`stop` bumps a generation counter; :meth:`start` only opens
subscriptions for the current generation. A start whose generation was
superseded while it awaited initialization is abandoned, so two starts
racing a stop can never leave two live subscriptions on one table.

Failure policy
--------------
Opening subscriptions is all-or-nothing. If any table fails, everything
opened in that attempt is torn down and the error propagates.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Dict, List

from .chart_data import ChartData
from .table_source import EVENT_UPDATED, Cleanup, TableEvent, find_columns, missing_columns

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())

TableEventHandler = Callable[[Any, TableEvent], None]


class ListeningState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    LISTENING = "listening"
    STOPPED = "stopped"


class SubscriptionManager:
    """Open, track and tear down one subscription per bound table."""

    def __init__(self) -> None:
        self._state = ListeningState.UNINITIALIZED
        self._generation = 0
        self._chart_data: Dict[Any, ChartData] = {}
        self._subscriptions: Dict[Any, Any] = {}
        self._cleanups: List[Cleanup] = []

    @property
    def state(self) -> ListeningState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._state is ListeningState.LISTENING

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def subscriptions(self) -> Dict[Any, Any]:
        """Return a copy of the table-to-subscription map."""
        return dict(self._subscriptions)

    def chart_data_for(self, table: Any) -> ChartData | None:
        return self._chart_data.get(table)

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def begin(self) -> int:
        """Start a new listening attempt and return its generation token."""
        self._generation += 1
        self._state = ListeningState.INITIALIZING
        return self._generation

    def fail(self, generation: int) -> None:
        """Record that the attempt ``generation`` could not initialize."""
        if self.is_current(generation):
            self._state = ListeningState.STOPPED

    def start(
        self,
        generation: int,
        binding_map: Mapping[Any, Mapping[str, Sequence[str]]],
        handler: TableEventHandler,
    ) -> bool:
        """Open subscriptions for every table in ``binding_map``.

        Parameters
        ----------
        generation : int
            Token returned by :meth:`begin` for this attempt.
        binding_map : Mapping
            ``{table: {column: [destination, ...]}}``.
        handler : callable
            Called as ``handler(table, event)`` for each update event.

        Returns
        -------
        bool
            ``False`` if the attempt was superseded and nothing was opened.
        """
        if not self.is_current(generation):
            logger.debug(f"start(generation={generation}) superseded by {self._generation}")
            return False

        # At most one subscription per table.
        self._teardown()

        try:
            for table, column_bindings in binding_map.items():
                self._open(table, list(column_bindings.keys()), handler)
        except Exception:
            self._teardown()
            self._state = ListeningState.STOPPED
            raise

        self._state = ListeningState.LISTENING
        logger.debug(f"start(generation={generation}) tables={len(self._subscriptions)}")
        return True

    def _open(self, table: Any, column_names: List[str], handler: TableEventHandler) -> None:
        missing = missing_columns(table, column_names)
        if missing:
            logger.warning(f"Bound columns {missing!r} not found on {table!r}; their destinations will be skipped")
        self._chart_data[table] = ChartData(table)
        subscription = table.subscribe(find_columns(table, column_names))
        self._subscriptions[table] = subscription
        self._cleanups.append(
            subscription.add_event_listener(EVENT_UPDATED, lambda event, t=table: handler(t, event))
        )

    def stop(self) -> None:
        """Close every subscription and drop all accumulators.

        Safe to call repeatedly; cleanup actions run at most once.
        """
        self._generation += 1
        self._state = ListeningState.STOPPED
        had_subscriptions = bool(self._subscriptions)
        self._teardown()
        if had_subscriptions:
            logger.debug(f"stop(generation={self._generation})")

    def _teardown(self) -> None:
        cleanups, self._cleanups = self._cleanups, []
        for cleanup in cleanups:
            cleanup()
        subscriptions = list(self._subscriptions.values())
        self._subscriptions.clear()
        self._chart_data.clear()
        for subscription in subscriptions:
            subscription.close()


__all__ = ["ListeningState", "SubscriptionManager", "TableEventHandler"]
