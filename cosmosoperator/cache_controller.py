"""Background polling of pod CometBFT status, cached per CosmosFullNode."""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from cosmosoperator.comet_client import CometStatus
from cosmosoperator.status_collection import Pod, StatusCollection

CACHE_CONTROLLER_NAME = "CosmosCache"
CONTROLLER_OWNER_FIELD = ".metadata.controller"
EVENT_WARNING = "Warning"

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ObjectKey:
    """Namespace and name identifying an object."""

    namespace: str = ""
    name: str = ""

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class NotFoundError(LookupError):
    """The requested object does not exist."""


class _Reader(Protocol):
    def get(self, key: ObjectKey) -> Any: ...

    def list_pods(self, namespace: str, matching_fields: dict[str, str]) -> list[Pod]: ...


class _Collector(Protocol):
    def collect(self, pods: list[Pod]) -> StatusCollection: ...


def available_pods(
    pods: Iterable[Pod], min_ready: timedelta, now: datetime | None = None
) -> list[Pod]:
    """Pods that are ready and have stayed ready for longer than min_ready."""
    if now is None:
        now = datetime.now(timezone.utc)
    result = []
    for pod in pods:
        for cond in pod.conditions:
            if cond.type != "Ready" or cond.status != "True":
                continue
            if min_ready <= timedelta(0) or (
                cond.last_transition_time is not None
                and cond.last_transition_time + min_ready < now
            ):
                result.append(pod)
            break
    return result


@dataclass
class _Entry:
    coll: StatusCollection
    stop: threading.Event


class _Cache:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[ObjectKey, _Entry] = {}

    def get(self, key: ObjectKey) -> StatusCollection | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            return StatusCollection(copy.copy(item) for item in entry.coll)

    def init(self, key: ObjectKey, stop: threading.Event) -> bool:
        with self._lock:
            if key in self._entries:
                return False
            self._entries[key] = _Entry(StatusCollection(), stop)
            return True

    def update(self, key: ObjectKey, coll: StatusCollection) -> None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                entry.coll = coll

    def delete(self, key: ObjectKey, stop: threading.Event | None = None) -> None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or (stop is not None and entry.stop is not stop):
                return
            entry.stop.set()
            del self._entries[key]

    def delete_all(self) -> None:
        with self._lock:
            for entry in self._entries.values():
                entry.stop.set()
            self._entries.clear()


class CacheController:
    """Periodically polls pods for their CometBFT status and caches the result.

    ``reader`` provides ``get(key)`` (raising NotFoundError when absent) and
    ``list_pods(namespace, matching_fields)``. ``collector`` provides
    ``collect(pods)``. ``recorder``, if given, provides
    ``event(obj, event_type, reason, message)``.
    """

    def __init__(
        self,
        collector: _Collector,
        reader: _Reader,
        recorder: Any = None,
        interval: float = 5.0,
    ) -> None:
        self._cache = _Cache()
        self._collector = collector
        self._reader = reader
        self._recorder = recorder
        self._interval = interval
        self._threads: list[threading.Thread] = []
        self._threads_lock = threading.Lock()

    def __enter__(self) -> CacheController:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def reconcile(self, key: ObjectKey) -> None:
        """Start collecting for the resource at key, or drop it if it is gone."""
        try:
            crd = self._reader.get(key)
        except NotFoundError:
            self._cache.delete(key)
            return
        stop = threading.Event()
        if not self._cache.init(key, stop):
            return
        thread = threading.Thread(
            target=self._collect_from_pods,
            args=(key, crd, stop),
            name=f"{CACHE_CONTROLLER_NAME}-{key}",
            daemon=True,
        )
        with self._threads_lock:
            self._threads.append(thread)
        thread.start()

    def invalidate(self, controller: ObjectKey, pods: Iterable[str]) -> None:
        """Drop the cached status of the named pods."""
        names = set(pods)
        coll = self._cache.get(controller)
        if coll is None:
            return
        now = datetime.now(timezone.utc)
        updated = StatusCollection(
            replace(item, status=CometStatus(), err=RuntimeError("invalidated"), ts=now)
            if item.pod.name in names
            else item
            for item in coll
        )
        self._cache.update(controller, updated)

    def collect(self, controller: ObjectKey) -> StatusCollection:
        """The cached status of the controller's current pods."""
        try:
            pods = self._list_pods(controller)
        except Exception:
            return StatusCollection()
        coll = self._cache.get(controller) or StatusCollection()
        coll.intersect_pods(pods)
        for pod in pods:
            coll.upsert_pod(pod)
        return coll

    def synced_pods(self, controller: ObjectKey) -> list[Pod]:
        """Pods that are ready and caught up with the chain tip."""
        return available_pods(
            self.collect(controller).synced_pods(),
            timedelta(seconds=5),
            datetime.now(timezone.utc),
        )

    def close(self) -> None:
        """Stop all collecting and wait for the background threads to exit."""
        self._cache.delete_all()
        with self._threads_lock:
            threads, self._threads = self._threads, []
        for thread in threads:
            thread.join()

    def _list_pods(self, controller: ObjectKey) -> list[Pod]:
        return list(
            self._reader.list_pods(
                controller.namespace, {CONTROLLER_OWNER_FIELD: controller.name}
            )
        )

    def _collect_once(self, key: ObjectKey, crd: Any) -> None:
        try:
            pods = self._list_pods(key)
        except Exception as exc:
            message = f"{key}: {exc}"
            _log.error("Failed to list pods: %s", message)
            if self._recorder is not None:
                self._recorder.event(crd, EVENT_WARNING, "ListPods", message)
            return
        self._cache.update(key, self._collector.collect(pods))

    def _collect_from_pods(self, key: ObjectKey, crd: Any, stop: threading.Event) -> None:
        try:
            while not stop.is_set():
                self._collect_once(key, crd)
                if stop.wait(self._interval):
                    return
        finally:
            self._cache.delete(key, stop)