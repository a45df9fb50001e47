import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

from cosmosoperator.cache_controller import (
    CONTROLLER_OWNER_FIELD,
    CacheController,
    NotFoundError,
    ObjectKey,
    available_pods,
)
from cosmosoperator.comet_client import CometStatus
from cosmosoperator.status_collection import Pod, PodCondition, StatusCollection, StatusItem
from cosmosoperator.v1 import CosmosFullNode


class MockCollector:
    def __init__(self, stub):
        self.called = 0
        self.got_pods = None
        self.stub = stub
        self._lock = threading.Lock()

    def collect(self, pods):
        with self._lock:
            self.called += 1
            self.got_pods = pods
        return StatusCollection(self.stub)


class MockReader:
    def __init__(self, pods=None):
        self.lock = threading.Lock()
        self.get_err = None
        self.list_err = None
        self.list_pods_value = pods or []
        self.list_args = None

    def get(self, key):
        with self.lock:
            if self.get_err is not None:
                raise self.get_err
            return CosmosFullNode(name=key.name, namespace=key.namespace)

    def list_pods(self, namespace, matching_fields):
        with self.lock:
            self.list_args = (namespace, dict(matching_fields))
            if self.list_err is not None:
                raise self.list_err
            return list(self.list_pods_value)


class MockRecorder:
    def __init__(self):
        self.events = []

    def event(self, obj, event_type, reason, message):
        self.events.append((obj.name, event_type, reason, message))


def eventually(cond, timeout=1.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if cond():
            return True
        time.sleep(0.001)
    return cond()


def ready(seconds_ago):
    return [
        PodCondition(
            type="Ready",
            status="True",
            last_transition_time=datetime.now(timezone.utc) - timedelta(seconds=seconds_ago),
        )
    ]


def test_reconcile_crd_created_or_updated():
    pods = [Pod(), Pod()]
    reader = MockReader(pods)
    stub = StatusCollection([StatusItem(pod=Pod()), StatusItem(pod=Pod()), StatusItem(pod=Pod())])
    collector = MockCollector(stub)
    controller = CacheController(collector, reader)
    key = ObjectKey(namespace="strangelove", name="nolus")

    for _ in range(3):
        assert controller.reconcile(key) is None

    assert eventually(lambda: len(controller.collect(key)) == 3)
    assert controller.collect(key) == stub
    assert collector.got_pods == pods
    assert reader.list_args == ("strangelove", {CONTROLLER_OWNER_FIELD: "nolus"})
    assert CONTROLLER_OWNER_FIELD == ".metadata.controller"

    controller.close()
    assert collector.called == 1


def test_reconcile_crd_deleted():
    reader = MockReader([Pod(uid="a")])
    collector = MockCollector([StatusItem(pod=Pod(uid="a"))])
    controller = CacheController(collector, reader)
    key = ObjectKey(namespace="strangelove", name="nolus")

    controller.reconcile(key)
    assert eventually(lambda: controller.collect(key)[0].err is None)

    reader.get_err = NotFoundError("nolus")
    controller.reconcile(key)

    got = controller.collect(key)
    assert len(got) == 1
    with pytest.raises(LookupError, match="missing status"):
        got[0].get_status()

    reader.get_err = None
    controller.reconcile(key)
    assert eventually(lambda: collector.called == 2)
    controller.close()


def test_reconcile_propagates_other_errors():
    reader = MockReader()
    reader.get_err = RuntimeError("boom")
    controller = CacheController(MockCollector([]), reader)
    with pytest.raises(RuntimeError, match="boom"):
        controller.reconcile(ObjectKey(namespace="ns", name="x"))
    controller.close()


def test_zero_state():
    controller = CacheController(MockCollector([StatusItem(pod=Pod())]), MockReader())
    key = ObjectKey(namespace="strangelove", name="nolus")
    assert controller.collect(key) == []
    assert controller.synced_pods(key) == []


def test_synced_pods():
    reader = MockReader([Pod(uid="1")])
    catching_up = CometStatus()
    catching_up.result.sync_info.catching_up = True
    collector = MockCollector(
        [
            StatusItem(pod=Pod(uid="1")),
            StatusItem(pod=Pod(uid="2"), status=catching_up),
            StatusItem(pod=Pod(uid="3")),
            StatusItem(pod=Pod(uid="should not see me"), status=catching_up),
        ]
    )
    controller = CacheController(collector, reader)
    key = ObjectKey(namespace="default", name="axelar")
    controller.reconcile(key)

    def cached():
        got = controller.collect(key)
        return len(got) == 1 and got[0].err is None

    assert eventually(cached)

    pods = [
        Pod(uid="1", conditions=ready(5)),
        Pod(uid="2", conditions=ready(5)),
        Pod(uid="3"),
        Pod(uid="new"),
    ]
    with reader.lock:
        reader.list_pods_value = pods

    got = controller.collect(key)
    assert [item.pod.uid for item in got] == ["1", "2", "3", "new"]
    with pytest.raises(LookupError, match="missing status"):
        got[3].get_status()

    synced = controller.synced_pods(key)
    assert synced == [pods[0]]

    controller.close()
    assert reader.list_args == ("default", {".metadata.controller": "axelar"})


def test_invalidate():
    pods = [Pod(name="a", uid="1"), Pod(name="b", uid="2")]
    reader = MockReader(pods)
    collector = MockCollector([StatusItem(pod=p) for p in pods])
    controller = CacheController(collector, reader, interval=60)
    key = ObjectKey(namespace="ns", name="node")
    controller.reconcile(key)
    assert eventually(lambda: all(item.err is None for item in controller.collect(key)))

    controller.invalidate(key, ["a"])
    got = controller.collect(key)
    with pytest.raises(RuntimeError, match="invalidated"):
        got[0].get_status()
    assert got[1].get_status() == CometStatus()
    controller.close()


def test_list_error_is_recorded():
    reader = MockReader()
    reader.list_err = RuntimeError("list failed")
    recorder = MockRecorder()
    collector = MockCollector([])
    controller = CacheController(collector, reader, recorder=recorder, interval=60)
    key = ObjectKey(namespace="ns", name="node")
    controller.reconcile(key)
    assert eventually(lambda: len(recorder.events) == 1)
    controller.close()
    name, event_type, reason, message = recorder.events[0]
    assert (name, event_type, reason) == ("node", "Warning", "ListPods")
    assert message == "ns/node: list failed"
    assert collector.called == 0
    assert controller.collect(key) == []


def test_available_pods():
    now = datetime.now(timezone.utc)
    long_ready = Pod(name="long", conditions=ready(60))
    fresh = Pod(name="fresh", conditions=ready(0))
    not_ready = Pod(name="not-ready")
    false_ready = Pod(name="false", conditions=[PodCondition(type="Ready", status="False")])
    pods = [long_ready, fresh, not_ready, false_ready]

    assert available_pods(pods, timedelta(seconds=5), now) == [long_ready]
    assert available_pods(pods, timedelta(0), now) == [long_ready, fresh]
    assert available_pods([], timedelta(seconds=5), now) == []


def test_object_key_str():
    assert str(ObjectKey(namespace="strangelove", name="nolus")) == "strangelove/nolus"