from __future__ import annotations

import asyncio

import pytest

from plotly_table_sync.chart_data import TableUpdate
from plotly_table_sync.table_source import (
    EVENT_UPDATED,
    Column,
    ExportedObject,
    InMemoryTable,
    Table,
    TableSubscription,
    find_columns,
    missing_columns,
)


def _table() -> InMemoryTable:
    return InMemoryTable([Column("X"), Column("Y"), Column("Z")], name="t")


def test_in_memory_table_satisfies_protocols() -> None:
    table = _table()
    assert isinstance(table, Table)
    assert isinstance(table.subscribe([table.find_column("X")]), TableSubscription)


def test_duplicate_columns_are_rejected() -> None:
    with pytest.raises(ValueError, match="Duplicate column"):
        InMemoryTable([Column("X"), Column("X")])


def test_subscription_receives_updates_scoped_to_its_columns() -> None:
    table = _table()
    sub = table.subscribe(find_columns(table, ["X", "Z"]))
    events = []
    sub.add_event_listener(EVENT_UPDATED, events.append)

    table.apply(TableUpdate(added={0: {"X": 1, "Y": 2, "Z": 3}}, modified={1: {"Y": 4}}))

    assert len(events) == 1
    assert events[0].type == EVENT_UPDATED
    assert events[0].detail.added == {0: {"X": 1, "Z": 3}}
    assert events[0].detail.modified == {}


def test_cleanup_removes_listener() -> None:
    table = _table()
    sub = table.subscribe([table.find_column("X")])
    events = []
    cleanup = sub.add_event_listener(EVENT_UPDATED, events.append)
    table.apply(TableUpdate(added={0: {"X": 1}}))
    assert len(events) == 1

    cleanup()
    cleanup()
    table.apply(TableUpdate(added={1: {"X": 2}}))

    assert len(events) == 1


def test_close_detaches_and_is_idempotent() -> None:
    table = _table()
    sub = table.subscribe([table.find_column("X")])
    assert table.subscriptions == (sub,)

    sub.close()
    sub.close()

    assert sub.closed
    assert table.subscriptions == ()
    with pytest.raises(RuntimeError, match="closed subscription"):
        sub.add_event_listener(EVENT_UPDATED, lambda event: None)


def test_subscribe_rejects_foreign_columns() -> None:
    table = _table()
    with pytest.raises(KeyError, match="Columns not in table"):
        table.subscribe([Column("W")])


def test_column_helpers_follow_table_order() -> None:
    table = _table()
    assert [c.name for c in find_columns(table, ["Z", "X", "Q"])] == ["X", "Z"]
    assert missing_columns(table, ["Z", "Q"]) == ["Q"]


def test_exported_object_fetch_returns_target() -> None:
    table = _table()
    exported = ExportedObject(table)
    assert asyncio.run(exported.fetch()) is table
    assert exported.type == "Table"


def test_new_subscription_first_receives_current_rows() -> None:
    table = _table()
    table.apply(TableUpdate(added={1: {"X": 10, "Y": 0}, 0: {"X": 5, "Y": 0}}))
    table.apply(TableUpdate(removed=(1,), modified={0: {"X": 6}}))

    sub = table.subscribe(find_columns(table, ["X"]))
    first, second = [], []
    sub.add_event_listener(EVENT_UPDATED, first.append)
    sub.add_event_listener(EVENT_UPDATED, second.append)

    assert [event.detail.added for event in first] == [{0: {"X": 6}}]
    assert second == []

    table.apply(TableUpdate(added={2: {"X": 7}}))
    assert first[-1].detail.added == {2: {"X": 7}}
    assert second[-1].detail.added == {2: {"X": 7}}


def test_empty_table_sends_no_initial_event() -> None:
    table = _table()
    sub = table.subscribe([table.find_column("X")])
    events = []
    sub.add_event_listener(EVENT_UPDATED, events.append)
    assert events == []
    assert table.snapshot().is_empty


def test_snapshot_is_scoped_to_requested_columns() -> None:
    table = _table()
    table.apply(TableUpdate(added={0: {"X": 1, "Y": 2, "Z": 3}}))
    assert table.snapshot(["Y"]).added == {0: {"Y": 2}}
    assert table.snapshot().added == {0: {"X": 1, "Y": 2, "Z": 3}}
