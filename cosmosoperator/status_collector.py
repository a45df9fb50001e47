"""Collects the CometBFT status of a set of pods concurrently."""

from __future__ import annotations

import copy
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Protocol

from cosmosoperator.comet_client import CometStatus
from cosmosoperator.status_collection import Pod, StatusCollection, StatusItem

RPC_PORT = 26657


class _Statuser(Protocol):
    def status(self, rpc_host: str, timeout: float | None = None) -> CometStatus: ...


class StatusCollector:
    """Fetches the CometBFT status of pods, each request bounded by timeout seconds."""

    def __init__(self, comet: _Statuser, timeout: float) -> None:
        self._comet = comet
        self._timeout = timeout

    def _fetch(self, pod: Pod, now: datetime) -> StatusItem:
        item = StatusItem(pod=copy.copy(pod), ts=now)
        if not pod.pod_ip:
            item.err = ValueError("pod has no IP")
            return item
        try:
            item.status = self._comet.status(f"http://{pod.pod_ip}:{RPC_PORT}", self._timeout)
        except Exception as exc:  # any failure is recorded on the item
            item.err = exc
        return item

    def collect(self, pods: list[Pod]) -> StatusCollection:
        """Return the status of every pod, sorted by ordinal."""
        if not pods:
            return StatusCollection()
        now = datetime.now(timezone.utc)
        with ThreadPoolExecutor(max_workers=len(pods)) as pool:
            items = StatusCollection(pool.map(lambda pod: self._fetch(pod, now), pods))
        items.sort_by_ordinal()
        return items