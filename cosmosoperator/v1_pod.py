"""Pod, volume and service settings of a CosmosFullNode."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

_E = TypeVar("_E", bound=Enum)


class FullNodeProbeStrategy(str, Enum):
    """Controls the default probes added to pods."""

    NONE = "None"


class RetentionPolicy(str, Enum):
    """What happens to PVCs when pods are scaled down."""

    RETAIN = "Retain"
    DELETE = "Delete"


class DisableStrategy(str, Enum):
    """Which part of an instance the controller leaves alone."""

    ALL = "All"
    POD = "Pod"


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


def _list(value: Any, what: str) -> list[Any] | None:
    if value is None:
        return None
    if not isinstance(value, list):
        raise TypeError(f"{what}: expected a list, got {type(value).__name__}")
    return copy.deepcopy(value)


def _object(value: Any, what: str) -> dict[str, Any] | None:
    if value is None:
        return None
    return copy.deepcopy(dict(_mapping(value, what)))


def _opt_int(value: Any) -> int | None:
    return None if value is None else int(value)


def _opt_str(value: Any) -> str | None:
    return None if value is None else str(value)


def _opt_enum(enum_cls: type[_E], value: Any) -> _E | None:
    if value is None or value == "":
        return None
    return enum_cls(value)


def _enum_value(member: Enum | None) -> str:
    return "" if member is None else member.value


@dataclass
class Metadata:
    """Labels and annotations added to a created resource."""

    labels: dict[str, str] | None = None
    annotations: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "labels": copy.deepcopy(self.labels),
            "annotations": copy.deepcopy(self.annotations),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Metadata:
        data = _mapping(data, "metadata")
        return cls(
            labels=_str_map(data.get("labels"), "labels"),
            annotations=_str_map(data.get("annotations"), "annotations"),
        )


@dataclass
class FullNodeProbesSpec:
    """Probe configuration for created pods."""

    strategy: FullNodeProbeStrategy | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"strategy": _enum_value(self.strategy)}

    @classmethod
    def from_dict(cls, data: Any) -> FullNodeProbesSpec:
        data = _mapping(data, "probes")
        return cls(strategy=_opt_enum(FullNodeProbeStrategy, data.get("strategy")))


@dataclass
class PodSpec:
    """Template applied to every pod of a full node."""

    metadata: Metadata = field(default_factory=Metadata)
    image: str = ""
    image_pull_policy: str = ""
    image_pull_secrets: list[dict[str, Any]] | None = None
    node_selector: dict[str, str] | None = None
    affinity: dict[str, Any] | None = None
    tolerations: list[dict[str, Any]] | None = None
    priority_class_name: str = ""
    priority: int | None = None
    resources: dict[str, Any] = field(default_factory=dict)
    termination_grace_period_seconds: int | None = None
    probes: FullNodeProbesSpec = field(default_factory=FullNodeProbesSpec)
    volumes: list[dict[str, Any]] | None = None
    init_containers: list[dict[str, Any]] | None = None
    containers: list[dict[str, Any]] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "image": self.image,
            "imagePullPolicy": self.image_pull_policy,
            "imagePullSecrets": copy.deepcopy(self.image_pull_secrets),
            "nodeSelector": copy.deepcopy(self.node_selector),
            "affinity": copy.deepcopy(self.affinity),
            "tolerations": copy.deepcopy(self.tolerations),
            "priorityClassName": self.priority_class_name,
            "priority": self.priority,
            "resources": copy.deepcopy(self.resources),
            "terminationGracePeriodSeconds": self.termination_grace_period_seconds,
            "probes": self.probes.to_dict(),
            "volumes": copy.deepcopy(self.volumes),
            "initContainers": copy.deepcopy(self.init_containers),
            "containers": copy.deepcopy(self.containers),
        }

    @classmethod
    def from_dict(cls, data: Any) -> PodSpec:
        data = _mapping(data, "podTemplate")
        return cls(
            metadata=Metadata.from_dict(data.get("metadata")),
            image=str(data.get("image", "")),
            image_pull_policy=str(data.get("imagePullPolicy", "")),
            image_pull_secrets=_list(data.get("imagePullSecrets"), "imagePullSecrets"),
            node_selector=_str_map(data.get("nodeSelector"), "nodeSelector"),
            affinity=_object(data.get("affinity"), "affinity"),
            tolerations=_list(data.get("tolerations"), "tolerations"),
            priority_class_name=str(data.get("priorityClassName", "")),
            priority=_opt_int(data.get("priority")),
            resources=_object(data.get("resources"), "resources") or {},
            termination_grace_period_seconds=_opt_int(data.get("terminationGracePeriodSeconds")),
            probes=FullNodeProbesSpec.from_dict(data.get("probes")),
            volumes=_list(data.get("volumes"), "volumes"),
            init_containers=_list(data.get("initContainers"), "initContainers"),
            containers=_list(data.get("containers"), "containers"),
        )


@dataclass
class AutoDataSource:
    """Discovers a PVC data source from matching VolumeSnapshots."""

    volume_snapshot_selector: dict[str, str] | None = None
    match_instance: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "volumeSnapshotSelector": copy.deepcopy(self.volume_snapshot_selector),
            "matchInstance": self.match_instance,
        }

    @classmethod
    def from_dict(cls, data: Any) -> AutoDataSource:
        data = _mapping(data, "autoDataSource")
        return cls(
            volume_snapshot_selector=_str_map(
                data.get("volumeSnapshotSelector"), "volumeSnapshotSelector"
            ),
            match_instance=bool(data.get("matchInstance", False)),
        )


@dataclass
class PersistentVolumeClaimSpec:
    """Common attributes of the PVC created for each replica."""

    metadata: Metadata = field(default_factory=Metadata)
    storage_class_name: str = ""
    resources: dict[str, Any] = field(default_factory=dict)
    access_modes: list[str] | None = None
    volume_mode: str | None = None
    data_source: dict[str, Any] | None = None
    auto_data_source: AutoDataSource | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "storageClassName": self.storage_class_name,
            "resources": copy.deepcopy(self.resources),
            "accessModes": copy.deepcopy(self.access_modes),
            "volumeMode": self.volume_mode,
            "dataSource": copy.deepcopy(self.data_source),
            "autoDataSource": (
                None if self.auto_data_source is None else self.auto_data_source.to_dict()
            ),
        }

    @classmethod
    def from_dict(cls, data: Any) -> PersistentVolumeClaimSpec:
        data = _mapping(data, "volumeClaimTemplate")
        modes = _list(data.get("accessModes"), "accessModes")
        auto = data.get("autoDataSource")
        return cls(
            metadata=Metadata.from_dict(data.get("metadata")),
            storage_class_name=str(data.get("storageClassName", "")),
            resources=_object(data.get("resources"), "resources") or {},
            access_modes=None if modes is None else [str(m) for m in modes],
            volume_mode=_opt_str(data.get("volumeMode")),
            data_source=_object(data.get("dataSource"), "dataSource"),
            auto_data_source=None if auto is None else AutoDataSource.from_dict(auto),
        )


@dataclass
class RolloutStrategy:
    """Update strategy; max_unavailable is a count or a percentage string."""

    max_unavailable: int | str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"maxUnavailable": self.max_unavailable}

    @classmethod
    def from_dict(cls, data: Any) -> RolloutStrategy:
        data = _mapping(data, "strategy")
        value = data.get("maxUnavailable")
        if value is not None and (isinstance(value, bool) or not isinstance(value, (int, str))):
            raise TypeError(f"maxUnavailable: expected an int or a string, got {value!r}")
        return cls(max_unavailable=value)


@dataclass
class ServiceOverridesSpec:
    """Overrides for created services."""

    metadata: Metadata = field(default_factory=Metadata)
    type: str | None = None
    external_traffic_policy: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "type": self.type,
            "externalTrafficPolicy": self.external_traffic_policy,
        }

    @classmethod
    def from_dict(cls, data: Any) -> ServiceOverridesSpec:
        data = _mapping(data, "service template")
        return cls(
            metadata=Metadata.from_dict(data.get("metadata")),
            type=_opt_str(data.get("type")),
            external_traffic_policy=_opt_str(data.get("externalTrafficPolicy")),
        )


@dataclass
class ServiceSpec:
    """Configuration of the RPC service and the p2p services."""

    max_p2p_external_addresses: int | None = None
    p2p_template: ServiceOverridesSpec = field(default_factory=ServiceOverridesSpec)
    rpc_template: ServiceOverridesSpec = field(default_factory=ServiceOverridesSpec)

    def to_dict(self) -> dict[str, Any]:
        return {
            "maxP2PExternalAddresses": self.max_p2p_external_addresses,
            "p2pTemplate": self.p2p_template.to_dict(),
            "rpcTemplate": self.rpc_template.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> ServiceSpec:
        data = _mapping(data, "service")
        return cls(
            max_p2p_external_addresses=_opt_int(data.get("maxP2PExternalAddresses")),
            p2p_template=ServiceOverridesSpec.from_dict(data.get("p2pTemplate")),
            rpc_template=ServiceOverridesSpec.from_dict(data.get("rpcTemplate")),
        )


@dataclass
class InstanceOverridesSpec:
    """Overrides for a single pod/PVC instance."""

    disable_strategy: DisableStrategy | None = None
    volume_claim_template: PersistentVolumeClaimSpec | None = None
    image: str = ""
    external_address: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "disable": None if self.disable_strategy is None else self.disable_strategy.value,
            "volumeClaimTemplate": (
                None
                if self.volume_claim_template is None
                else self.volume_claim_template.to_dict()
            ),
            "image": self.image,
            "externalAddress": self.external_address,
        }

    @classmethod
    def from_dict(cls, data: Any) -> InstanceOverridesSpec:
        data = _mapping(data, "instanceOverrides")
        template = data.get("volumeClaimTemplate")
        return cls(
            disable_strategy=_opt_enum(DisableStrategy, data.get("disable")),
            volume_claim_template=(
                None if template is None else PersistentVolumeClaimSpec.from_dict(template)
            ),
            image=str(data.get("image", "")),
            external_address=_opt_str(data.get("externalAddress")),
        )