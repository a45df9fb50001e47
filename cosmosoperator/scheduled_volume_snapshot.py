"""The ScheduledVolumeSnapshot resource of the cosmos.strange.love/v1alpha1 API group."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from cosmosoperator.v1 import GroupVersion

GROUP_VERSION = GroupVersion(group="cosmos.strange.love", version="v1alpha1")

SCHEDULED_VOLUME_SNAPSHOT_CONTROLLER = "ScheduledVolumeSnapshot"


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeError(f"{what}: expected a mapping, got {type(data).__name__}")
    return data


def _str_map(value: Any, what: str) -> dict[str, str] | None:
    if value is None:
        return None
    return {str(k): str(v) for k, v in _mapping(value, what).items()}


def _format_time(ts: datetime | None) -> str | None:
    if ts is None:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _parse_time(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
        parsed = datetime.fromisoformat(text)
    else:
        raise TypeError(f"timestamp: expected a string, got {type(value).__name__}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class SnapshotPhase(str, Enum):
    """Phase of the snapshot state machine. These values are persisted."""

    WAITING_FOR_NEXT = "WaitingForNext"
    FINDING_CANDIDATE = "FindingCandidate"
    DELETING_POD = "DeletingPod"
    WAITING_FOR_POD_DELETION = "WaitingForPodDeletion"
    CREATING = "CreatingSnapshot"
    WAITING_FOR_CREATION = "WaitingForSnapshotCreation"
    RESTORE_POD = "RestoringPod"
    SUSPENDED = "Suspended"
    MISSING_CRDS = "MissingCRDs"


@dataclass
class LocalFullNodeRef:
    """Reference to a CosmosFullNode in the same namespace."""

    name: str = ""
    namespace: str = ""
    ordinal: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "namespace": self.namespace, "ordinal": self.ordinal}

    @classmethod
    def from_dict(cls, data: Any) -> LocalFullNodeRef:
        data = _mapping(data, "fullNodeRef")
        ordinal = data.get("ordinal")
        return cls(
            name=str(data.get("name", "")),
            namespace=str(data.get("namespace", "")),
            ordinal=None if ordinal is None else int(ordinal),
        )


@dataclass
class ScheduledVolumeSnapshotSpec:
    """Desired state: recurring VolumeSnapshots of a full node's PVC."""

    full_node_ref: LocalFullNodeRef = field(default_factory=LocalFullNodeRef)
    schedule: str = ""
    volume_snapshot_class_name: str = ""
    delete_pod: bool = False
    min_available: int = 0
    limit: int = 0
    suspend: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "fullNodeRef": self.full_node_ref.to_dict(),
            "schedule": self.schedule,
            "volumeSnapshotClassName": self.volume_snapshot_class_name,
            "deletePod": self.delete_pod,
            "minAvailable": self.min_available,
            "limit": self.limit,
            "suspend": self.suspend,
        }

    @classmethod
    def from_dict(cls, data: Any) -> ScheduledVolumeSnapshotSpec:
        data = _mapping(data, "spec")
        return cls(
            full_node_ref=LocalFullNodeRef.from_dict(data.get("fullNodeRef")),
            schedule=str(data.get("schedule", "")),
            volume_snapshot_class_name=str(data.get("volumeSnapshotClassName", "")),
            delete_pod=bool(data.get("deletePod", False)),
            min_available=int(data.get("minAvailable", 0)),
            limit=int(data.get("limit", 0)),
            suspend=bool(data.get("suspend", False)),
        )


@dataclass
class SnapshotCandidate:
    """The pod/PVC pair from which a VolumeSnapshot is made."""

    pod_name: str = ""
    pvc_name: str = ""
    pod_labels: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "podName": self.pod_name,
            "pvcName": self.pvc_name,
            "podLabels": copy.deepcopy(self.pod_labels),
        }

    @classmethod
    def from_dict(cls, data: Any) -> SnapshotCandidate:
        data = _mapping(data, "candidate")
        return cls(
            pod_name=str(data.get("podName", "")),
            pvc_name=str(data.get("pvcName", "")),
            pod_labels=_str_map(data.get("podLabels"), "podLabels"),
        )


@dataclass
class VolumeSnapshotStatus:
    """The most recent VolumeSnapshot created by the controller."""

    name: str = ""
    started_at: datetime | None = None
    status: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "startedAt": _format_time(self.started_at),
            "status": copy.deepcopy(self.status),
        }

    @classmethod
    def from_dict(cls, data: Any) -> VolumeSnapshotStatus:
        data = _mapping(data, "lastSnapshot")
        status = data.get("status")
        return cls(
            name=str(data.get("name", "")),
            started_at=_parse_time(data.get("startedAt")),
            status=None if status is None else copy.deepcopy(dict(_mapping(status, "status"))),
        )


@dataclass
class ScheduledVolumeSnapshotStatus:
    """Observed state of a ScheduledVolumeSnapshot."""

    observed_generation: int = 0
    status_message: str | None = None
    phase: SnapshotPhase | None = None
    created_at: datetime | None = None
    candidate: SnapshotCandidate | None = None
    last_snapshot: VolumeSnapshotStatus | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "observedGeneration": self.observed_generation,
            "status": self.status_message,
            "phase": "" if self.phase is None else self.phase.value,
            "createdAt": _format_time(self.created_at),
            "candidate": None if self.candidate is None else self.candidate.to_dict(),
            "lastSnapshot": None if self.last_snapshot is None else self.last_snapshot.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> ScheduledVolumeSnapshotStatus:
        data = _mapping(data, "status")
        phase = data.get("phase")
        status_message = data.get("status")
        candidate = data.get("candidate")
        last = data.get("lastSnapshot")
        return cls(
            observed_generation=int(data.get("observedGeneration", 0)),
            status_message=None if status_message is None else str(status_message),
            phase=None if phase in (None, "") else SnapshotPhase(phase),
            created_at=_parse_time(data.get("createdAt")),
            candidate=None if candidate is None else SnapshotCandidate.from_dict(candidate),
            last_snapshot=None if last is None else VolumeSnapshotStatus.from_dict(last),
        )


@dataclass
class ScheduledVolumeSnapshot:
    """Creates recurring VolumeSnapshots of a PVC managed by a CosmosFullNode."""

    name: str = ""
    namespace: str = ""
    uid: str = ""
    generation: int = 0
    resource_version: str = ""
    labels: dict[str, str] | None = None
    annotations: dict[str, str] | None = None
    spec: ScheduledVolumeSnapshotSpec = field(default_factory=ScheduledVolumeSnapshotSpec)
    status: ScheduledVolumeSnapshotStatus = field(default_factory=ScheduledVolumeSnapshotStatus)

    KIND = "ScheduledVolumeSnapshot"

    def _metadata(self) -> dict[str, Any]:
        meta: dict[str, Any] = {}
        if self.name:
            meta["name"] = self.name
        if self.namespace:
            meta["namespace"] = self.namespace
        if self.uid:
            meta["uid"] = self.uid
        if self.resource_version:
            meta["resourceVersion"] = self.resource_version
        if self.generation:
            meta["generation"] = self.generation
        if self.labels:
            meta["labels"] = dict(self.labels)
        if self.annotations:
            meta["annotations"] = dict(self.annotations)
        return meta

    def to_dict(self) -> dict[str, Any]:
        """Render the object as its API representation."""
        return {
            "apiVersion": GROUP_VERSION.api_version(),
            "kind": self.KIND,
            "metadata": self._metadata(),
            "spec": self.spec.to_dict(),
            "status": self.status.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> ScheduledVolumeSnapshot:
        """Build the object from its API representation."""
        data = _mapping(data, cls.KIND)
        kind = data.get("kind")
        if kind not in (None, "", cls.KIND):
            raise ValueError(f"kind: expected {cls.KIND}, got {kind!r}")
        api_version = data.get("apiVersion")
        if api_version not in (None, "", GROUP_VERSION.api_version()):
            raise ValueError(
                f"apiVersion: expected {GROUP_VERSION.api_version()}, got {api_version!r}"
            )
        meta = _mapping(data.get("metadata"), "metadata")
        return cls(
            name=str(meta.get("name", "")),
            namespace=str(meta.get("namespace", "")),
            uid=str(meta.get("uid", "")),
            generation=int(meta.get("generation", 0)),
            resource_version=str(meta.get("resourceVersion", "")),
            labels=_str_map(meta.get("labels"), "labels"),
            annotations=_str_map(meta.get("annotations"), "annotations"),
            spec=ScheduledVolumeSnapshotSpec.from_dict(data.get("spec")),
            status=ScheduledVolumeSnapshotStatus.from_dict(data.get("status")),
        )

    def deep_copy(self) -> ScheduledVolumeSnapshot:
        """Return an independent copy of the object."""
        return copy.deepcopy(self)