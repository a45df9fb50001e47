"""Pods paired with the CometBFT status fetched from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from cosmosoperator.comet_client import CometStatus

ORDINAL_ANNOTATION = "app.kubernetes.io/ordinal"


@dataclass
class PodCondition:
    """One condition of a pod, such as Ready."""

    type: str = ""
    status: str = ""
    last_transition_time: datetime | None = None


@dataclass
class Pod:
    """The parts of a pod the status machinery needs."""

    name: str = ""
    namespace: str = ""
    uid: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    pod_ip: str = ""
    conditions: list[PodCondition] = field(default_factory=list)

    def is_ready(self) -> bool:
        """Whether the pod reports the Ready condition as True."""
        return any(c.type == "Ready" and c.status == "True" for c in self.conditions)

    def _ordinal(self) -> int:
        try:
            return int(self.annotations.get(ORDINAL_ANNOTATION, ""))
        except ValueError:
            return 0


@dataclass
class StatusItem:
    """A pod paired with its CometBFT status or the error fetching it."""

    pod: Pod
    status: CometStatus = field(default_factory=CometStatus)
    ts: datetime | None = None
    err: Exception | None = None

    def get_status(self) -> CometStatus:
        """Return the status, raising the error if it could not be fetched."""
        if self.err is not None:
            raise self.err
        return self.status


class StatusCollection(list):
    """A list of StatusItem."""

    def sort_by_ordinal(self) -> None:
        """Sort in place by the pods' ordinal annotation."""
        self.sort(key=lambda item: item.pod._ordinal())

    def upsert_pod(self, pod: Pod) -> None:
        """Replace the pod with the same UID, or add it with a missing status."""
        for item in self:
            if item.pod.uid == pod.uid:
                item.pod = pod
                return
        self.append(
            StatusItem(pod=pod, ts=datetime.now(timezone.utc), err=LookupError("missing status"))
        )

    def intersect_pods(self, pods: list[Pod]) -> None:
        """Remove in place every item whose pod is not among pods."""
        uids = {pod.uid for pod in pods}
        self[:] = [item for item in self if item.pod.uid in uids]

    def pods(self) -> list[Pod]:
        """All pods in the collection."""
        return [item.pod for item in self]

    def synced(self) -> StatusCollection:
        """Items whose status was fetched and that are caught up with the chain tip."""
        return StatusCollection(
            item
            for item in self
            if item.err is None and not item.status.result.sync_info.catching_up
        )

    def synced_pods(self) -> list[Pod]:
        """Pods that are caught up with the chain tip."""
        return self.synced().pods()