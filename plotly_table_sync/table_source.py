"""Streaming table client interface and an in-memory implementation.

Purpose
-------
The synchronizer only needs a narrow view of a live table: its declared
columns, a way to open a column-scoped subscription, and an update event
stream on that subscription. :class:`Table` and :class:`TableSubscription`
describe that surface as protocols. :class:`InMemoryTable` implements it
for tests, notebooks and demos where no remote table server is available.

Like a server-backed table, a new subscription first receives the current
rows as one ``EVENT_UPDATED`` whose ``added`` holds every row, then the
incremental deltas applied after it. The snapshot is delivered to the first
update listener registered on the subscription.

Examples
--------
>>> table = InMemoryTable([Column("X", "int"), Column("Y", "int")])
>>> sub = table.subscribe([table.find_column("X")])
>>> seen = []
>>> cleanup = sub.add_event_listener(EVENT_UPDATED, seen.append)
>>> table.apply(TableUpdate(added={0: {"X": 1, "Y": 2}}))
>>> seen[0].detail.added
{0: {'X': 1}}
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, List, Protocol, runtime_checkable

from .chart_data import ChartData, TableUpdate

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())

EVENT_UPDATED = "updated"

Cleanup = Callable[[], None]


@dataclass(frozen=True)
class Column:
    """Declared column of a table."""

    name: str
    type: str = "java.lang.Object"


@dataclass(frozen=True)
class TableEvent:
    """Event delivered to subscription listeners.

    ``detail`` carries the :class:`TableUpdate` for ``EVENT_UPDATED``.
    """

    type: str
    detail: Any = None


@runtime_checkable
class TableSubscription(Protocol):
    columns: Sequence[Column]

    def add_event_listener(self, event_name: str, callback: Callable[[TableEvent], None]) -> Cleanup: ...

    def close(self) -> None: ...


@runtime_checkable
class Table(Protocol):
    columns: Sequence[Column]

    def subscribe(self, columns: Sequence[Column]) -> TableSubscription: ...


class InMemoryTableSubscription:
    """Column-scoped subscription on an :class:`InMemoryTable`."""

    def __init__(self, table: "InMemoryTable", columns: Sequence[Column]) -> None:
        self._table = table
        self.columns = tuple(columns)
        self._listeners: dict[str, List[Callable[[TableEvent], None]]] = {}
        self._snapshot_sent = False
        self.closed = False

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    def add_event_listener(self, event_name: str, callback: Callable[[TableEvent], None]) -> Cleanup:
        """Register ``callback`` for ``event_name`` and return its remover.

        The first ``EVENT_UPDATED`` listener immediately receives the table's
        current rows, unless the table is empty.
        """
        if self.closed:
            raise RuntimeError("Cannot add a listener to a closed subscription")
        listeners = self._listeners.setdefault(event_name, [])
        listeners.append(callback)

        def _remove() -> None:
            if callback in listeners:
                listeners.remove(callback)

        if event_name == EVENT_UPDATED and not self._snapshot_sent:
            self._snapshot_sent = True
            snapshot = self._table.snapshot(self.column_names)
            if not snapshot.is_empty:
                callback(TableEvent(EVENT_UPDATED, snapshot))
        return _remove

    def close(self) -> None:
        """Stop delivery. Closing twice is a no-op."""
        if self.closed:
            return
        self.closed = True
        self._listeners.clear()
        self._table._detach(self)

    def _dispatch(self, event: TableEvent) -> None:
        for callback in list(self._listeners.get(event.type, ())):
            callback(event)


class InMemoryTable:
    """Table held in process memory that fans updates out to subscriptions.

    Parameters
    ----------
    columns : Sequence[Column]
        Declared columns, in table order.
    name : str, optional
        Label used in ``repr`` and log messages.
    """

    def __init__(self, columns: Sequence[Column], *, name: str = "table") -> None:
        names = [column.name for column in columns]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate column names in {names!r}")
        self.columns = tuple(columns)
        self.name = name
        self._subscriptions: List[InMemoryTableSubscription] = []
        self._data = ChartData(self)

    def __repr__(self) -> str:
        return f"InMemoryTable(name={self.name!r}, columns={[c.name for c in self.columns]!r})"

    def find_column(self, name: str) -> Column:
        for column in self.columns:
            if column.name == name:
                return column
        raise KeyError(f"Unknown column: {name}")

    @property
    def subscriptions(self) -> tuple[InMemoryTableSubscription, ...]:
        """Return currently open subscriptions."""
        return tuple(self._subscriptions)

    def subscribe(self, columns: Sequence[Column]) -> InMemoryTableSubscription:
        unknown = [column.name for column in columns if column not in self.columns]
        if unknown:
            raise KeyError(f"Columns not in table {self.name!r}: {unknown!r}")
        subscription = InMemoryTableSubscription(self, columns)
        self._subscriptions.append(subscription)
        logger.debug(f"subscribe(table={self.name}, columns={subscription.column_names})")
        return subscription

    def snapshot(self, columns: Sequence[str] | None = None) -> TableUpdate:
        """Return the current rows as an ``added``-only update.

        ``columns`` restricts each row to those column names.
        """
        update = TableUpdate(added=self._data.rows())
        return update if columns is None else update.filtered(columns)

    def apply(self, update: TableUpdate) -> None:
        """Store ``update`` and deliver it to every open subscription, scoped to its columns."""
        self._data.update(update)
        for subscription in list(self._subscriptions):
            scoped = update.filtered(subscription.column_names)
            subscription._dispatch(TableEvent(EVENT_UPDATED, scoped))

    def _detach(self, subscription: InMemoryTableSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)


class ExportedObject:
    """Lazy reference to a server-side object, resolved with :meth:`fetch`."""

    def __init__(self, target: Any, *, type: str = "Table") -> None:
        self._target = target
        self.type = type

    async def fetch(self) -> Any:
        return self._target


def find_columns(table: Any, names: Sequence[str]) -> List[Column]:
    """Return the columns of ``table`` named in ``names``, in table order.

    Names absent from the table are skipped.
    """
    wanted = set(names)
    return [column for column in table.columns if column.name in wanted]


def missing_columns(table: Any, names: Sequence[str]) -> List[str]:
    present = {column.name for column in table.columns}
    return [name for name in names if name not in present]


__all__ = [
    "Cleanup",
    "Column",
    "EVENT_UPDATED",
    "ExportedObject",
    "InMemoryTable",
    "InMemoryTableSubscription",
    "Table",
    "TableEvent",
    "TableSubscription",
    "find_columns",
    "missing_columns",
]
