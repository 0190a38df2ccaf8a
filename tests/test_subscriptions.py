from __future__ import annotations

import logging

import pytest

from plotly_table_sync.chart_data import TableUpdate
from plotly_table_sync.subscriptions import ListeningState, SubscriptionManager
from plotly_table_sync.table_source import Column, InMemoryTable


class _FailingTable(InMemoryTable):
    def subscribe(self, columns):
        raise ConnectionError("subscription refused")


def _binding_map():
    a = InMemoryTable([Column("X"), Column("Y"), Column("Z")], name="a")
    b = InMemoryTable([Column("T")], name="b")
    return a, b, {a: {"X": ["/plotly/data/0/x"], "Y": ["/plotly/data/0/y"]}, b: {"T": ["/plotly/data/1/x"]}}


def test_start_opens_one_scoped_subscription_per_table() -> None:
    a, b, binding_map = _binding_map()
    manager = SubscriptionManager()
    assert manager.state is ListeningState.UNINITIALIZED

    generation = manager.begin()
    assert manager.state is ListeningState.INITIALIZING
    assert manager.start(generation, binding_map, lambda table, event: None)

    assert manager.state is ListeningState.LISTENING
    assert set(manager.subscriptions) == {a, b}
    assert len(a.subscriptions) == 1
    assert a.subscriptions[0].column_names == ("X", "Y")
    assert b.subscriptions[0].column_names == ("T",)
    assert manager.chart_data_for(a) is not None


def test_events_are_routed_with_their_table() -> None:
    a, b, binding_map = _binding_map()
    manager = SubscriptionManager()
    seen = []
    manager.start(manager.begin(), binding_map, lambda table, event: seen.append((table, event.detail)))

    b.apply(TableUpdate(added={0: {"T": 1}}))

    assert len(seen) == 1
    assert seen[0][0] is b
    assert seen[0][1].added == {0: {"T": 1}}


def test_stop_is_idempotent_and_runs_cleanups_once() -> None:
    a, b, binding_map = _binding_map()
    manager = SubscriptionManager()
    manager.start(manager.begin(), binding_map, lambda table, event: None)
    subscription = a.subscriptions[0]

    manager.stop()
    assert manager.state is ListeningState.STOPPED
    assert subscription.closed
    assert a.subscriptions == () and b.subscriptions == ()
    assert manager.subscriptions == {}
    assert manager.chart_data_for(a) is None

    manager.stop()
    assert manager.state is ListeningState.STOPPED


def test_stop_without_start_only_resets_state() -> None:
    manager = SubscriptionManager()
    manager.stop()
    assert manager.state is ListeningState.STOPPED
    assert not manager.is_listening


def test_restart_never_leaves_two_subscriptions_on_a_table() -> None:
    a, b, binding_map = _binding_map()
    manager = SubscriptionManager()
    manager.start(manager.begin(), binding_map, lambda table, event: None)
    manager.start(manager.begin(), binding_map, lambda table, event: None)

    assert len(a.subscriptions) == 1
    assert len(b.subscriptions) == 1


def test_superseded_generation_is_abandoned(caplog) -> None:
    a, _, binding_map = _binding_map()
    manager = SubscriptionManager()
    stale = manager.begin()
    manager.stop()
    fresh = manager.begin()

    with caplog.at_level(logging.DEBUG, logger="plotly_table_sync.subscriptions"):
        assert manager.start(stale, binding_map, lambda table, event: None) is False
    assert "superseded" in caplog.text
    assert a.subscriptions == ()

    assert manager.start(fresh, binding_map, lambda table, event: None) is True
    assert len(a.subscriptions) == 1


def test_failure_on_one_table_rolls_back_the_others() -> None:
    a = InMemoryTable([Column("X")], name="a")
    bad = _FailingTable([Column("T")], name="bad")
    manager = SubscriptionManager()

    with pytest.raises(ConnectionError, match="refused"):
        manager.start(manager.begin(), {a: {"X": ["/plotly/data/0/x"]}, bad: {"T": ["/plotly/data/1/x"]}}, lambda t, e: None)

    assert a.subscriptions == ()
    assert manager.subscriptions == {}
    assert manager.state is ListeningState.STOPPED


def test_missing_bound_column_is_warned_and_not_subscribed(caplog) -> None:
    a = InMemoryTable([Column("X")], name="a")
    manager = SubscriptionManager()
    with caplog.at_level(logging.WARNING, logger="plotly_table_sync.subscriptions"):
        manager.start(manager.begin(), {a: {"X": ["/plotly/data/0/x"], "Q": ["/plotly/data/0/y"]}}, lambda t, e: None)

    assert "['Q']" in caplog.text
    assert a.subscriptions[0].column_names == ("X",)


def test_fail_marks_current_attempt_stopped() -> None:
    manager = SubscriptionManager()
    generation = manager.begin()
    manager.fail(generation)
    assert manager.state is ListeningState.STOPPED


def test_existing_rows_reach_the_handler_while_opening() -> None:
    a, b, binding_map = _binding_map()
    a.apply(TableUpdate(added={0: {"X": 1, "Y": 2, "Z": 3}}))
    manager = SubscriptionManager()
    seen = []

    def handler(table, event):
        seen.append((table, event.detail.added, manager.state))

    manager.start(manager.begin(), binding_map, handler)

    assert seen == [(a, {0: {"X": 1, "Y": 2}}, ListeningState.INITIALIZING)]
    assert manager.state is ListeningState.LISTENING
