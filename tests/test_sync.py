from __future__ import annotations

import pytest

from conftest import make_order
from till.codec import order_to_document
from till.errors import SyncFailure
from till.models import OrderState
from till.sync import SyncEngine


def _engine(remote, clock, **kwargs):
    calls = {"n": 0}

    def snapshot():
        calls["n"] += 1
        return {"nextOrderNo": calls["n"]}

    return SyncEngine(remote, snapshot, debounce_seconds=1.6, clock=clock, **kwargs), calls


def test_push_waits_for_a_quiet_window(remote, clock):
    engine, _ = _engine(remote, clock)
    engine.notify_changed()
    clock.advance(1.0)
    engine.tick()
    engine.notify_changed()
    clock.advance(1.0)
    engine.tick()
    assert remote.merge_calls == 0
    assert engine.status().pending_push

    clock.advance(0.7)
    engine.tick()
    assert remote.merge_calls == 1
    assert not engine.status().pending_push
    assert engine.status().last_save_at is not None


def test_rapid_changes_coalesce_into_one_fresh_snapshot(remote, clock):
    engine, calls = _engine(remote, clock)
    for _ in range(5):
        engine.notify_changed()
        clock.advance(0.1)
    clock.advance(2)
    engine.tick()
    engine.tick()
    assert remote.merge_calls == 1
    assert calls["n"] == 1
    assert remote.state == {"nextOrderNo": 1}


def test_presence_is_written_with_each_push(remote, clock):
    engine, _ = _engine(remote, clock, presence=lambda: {"worker": "Hassan"})
    engine.push_now()
    assert remote.status == {"worker": "Hassan"}


def test_push_failure_is_recorded_not_raised(remote, clock):
    engine, _ = _engine(remote, clock)
    remote.fail = True
    engine.notify_changed()
    clock.advance(2)
    engine.tick()
    status = engine.status()
    assert status.last_error == "remote unavailable"
    assert "Sync error" in status.describe()
    with pytest.raises(SyncFailure):
        engine.push_now()


def test_disabled_engine_does_nothing(clock):
    engine = SyncEngine(None, dict, clock=clock)
    engine.notify_changed()
    engine.mirror_order(make_order(1, "10"))
    engine.tick()
    status = engine.status()
    assert not status.enabled
    assert status.queued == 0
    assert status.describe() == "Sync: off"
    with pytest.raises(SyncFailure):
        engine.push_now()
    with pytest.raises(SyncFailure):
        engine.pull()


def test_mirrored_order_gets_remote_id_and_later_update(remote, clock):
    mirrored = []
    engine, _ = _engine(remote, clock, on_order_mirrored=lambda no, at, rid: mirrored.append((no, at, rid)))
    order = make_order(1, "10")
    engine.mirror_order(order)
    order.state = OrderState.DONE
    engine.mirror_order_update(order, {"state": "done", "done": True})
    assert engine.status().queued == 2

    engine.tick()
    assert mirrored == [(1, order.date, "r1")]
    assert remote.orders["r1"]["state"] == "done"
    assert remote.orders["r1"]["done"] is True
    assert engine.status().last_error is None


def test_update_falls_back_to_lookup_by_order_number(remote, clock):
    order = make_order(3, "10")
    remote.orders["existing"] = order_to_document(order)
    engine, _ = _engine(remote, clock)

    engine.mirror_order_update(order, {"state": "voided", "voided": True})
    engine.tick()
    assert remote.orders["existing"]["voided"] is True


def test_update_without_remote_copy_fails_that_mutation_only(remote, clock):
    engine, _ = _engine(remote, clock)
    order = make_order(5, "10")
    engine.mirror_order_update(order, {"state": "done"})
    engine.tick()
    assert "Order #5" in engine.status().last_error
    assert order.state is OrderState.OPEN


def test_forget_orders_drops_learned_ids(remote, clock):
    engine, _ = _engine(remote, clock)
    order = make_order(1, "10")
    engine.mirror_order(order)
    engine.tick()
    engine.forget_orders()
    remote.orders.clear()
    engine.mirror_order_update(order, {"state": "done"})
    engine.tick()
    assert engine.status().last_error is not None


def test_pull_requires_saved_state(remote, clock):
    engine, _ = _engine(remote, clock)
    with pytest.raises(SyncFailure):
        engine.pull()
    remote.state = {"workers": ["Omar"]}
    assert engine.pull() == {"workers": ["Omar"]}
    assert engine.status().last_load_at is not None


def test_order_stream_delivers_full_list(remote, clock):
    engine, _ = _engine(remote, clock)
    received = []
    remote.create_order(order_to_document(make_order(1, "10")))

    engine.enable_order_stream(received.append)
    assert engine.status().streaming
    assert [(o.order_no, o.remote_id) for o in received[-1]] == [(1, "r1")]

    remote.create_order(order_to_document(make_order(2, "20")))
    remote.emit()
    assert [o.order_no for o in received[-1]] == [2, 1]

    engine.disable_order_stream()
    assert remote.subscribers == []
    assert not engine.status().streaming


def test_order_stream_that_cannot_start_is_reported(remote, clock):
    engine, _ = _engine(remote, clock)
    remote.stream_broken = True

    engine.enable_order_stream(lambda orders: None)

    status = engine.status()
    assert not status.streaming
    assert status.last_error == "change streams need a replica set"
    assert status.describe().startswith("Sync error")


def test_order_stream_dying_later_is_reported(remote, clock):
    engine, _ = _engine(remote, clock)
    engine.enable_order_stream(lambda orders: None)
    assert engine.status().streaming

    remote.drop_stream()

    status = engine.status()
    assert not status.streaming
    assert status.last_error == "stream cursor killed"
    engine.enable_order_stream(lambda orders: None)
    assert engine.status().streaming


def test_start_and_stop_background_thread(remote, clock):
    engine, _ = _engine(remote, clock)
    engine.start()
    assert engine._thread is not None
    engine.stop()
    assert engine._thread is None
