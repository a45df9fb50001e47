"""The CosmosFullNode resource of the cosmos.strange.love/v1 API group."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar

from cosmosoperator.self_healing import SelfHealingStatus, SelfHealSpec
from cosmosoperator.v1_pod import (
    InstanceOverridesSpec,
    PersistentVolumeClaimSpec,
    PodSpec,
    RetentionPolicy,
    RolloutStrategy,
    ServiceSpec,
)

_E = TypeVar("_E", bound=Enum)

COSMOS_FULL_NODE_CONTROLLER = "CosmosFullNode"


@dataclass(frozen=True)
class GroupVersion:
    """An API group paired with a version."""

    group: str
    version: str

    def api_version(self) -> str:
        """The apiVersion string of objects in this group version."""
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"


GROUP_VERSION = GroupVersion(group="cosmos.strange.love", version="v1")


class FullNodeType(str, Enum):
    """Flavour of a full node's configuration."""

    FULL_NODE = "FullNode"
    SENTRY = "Sentry"


class FullNodePhase(str, Enum):
    """Phase of a full node deployment."""

    COMPLETE = "Complete"
    ERROR = "Error"
    P2P_SERVICES = "WaitingForP2PServices"
    PROGRESSING = "Progressing"
    TRANSIENT_ERROR = "TransientError"


class PruningStrategy(str, Enum):
    """How much chain state to keep on disk."""

    DEFAULT = "default"
    NOTHING = "nothing"
    EVERYTHING = "everything"
    CUSTOM = "custom"


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


def _str_list(value: Any, what: str) -> list[str] | None:
    if value is None:
        return None
    if not isinstance(value, list):
        raise TypeError(f"{what}: expected a list, got {type(value).__name__}")
    return [str(v) for v in value]


def _uint(value: Any, what: str) -> int:
    number = int(value)
    if number < 0:
        raise ValueError(f"{what}: must not be negative, got {number}")
    return number


def _opt_uint(value: Any, what: str) -> int | None:
    return None if value is None else _uint(value, what)


def _opt_int(value: Any) -> int | None:
    return None if value is None else int(value)


def _opt_str(value: Any) -> str | None:
    return None if value is None else str(value)


def _opt_bool(value: Any) -> bool | None:
    return None if value is None else bool(value)


def _opt_enum(enum_cls: type[_E], value: Any) -> _E | None:
    if value is None or value == "":
        return None
    return enum_cls(value)


def _enum_value(member: Enum | None) -> str:
    return "" if member is None else member.value


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


@dataclass
class ChainVersion:
    """An image to run from a given block height onward."""

    upgrade_height: int = 0
    image: str = ""
    init_containers: dict[str, str] | None = None
    containers: dict[str, str] | None = None
    set_halt_height: bool = False

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "height": self.upgrade_height,
            "image": self.image,
            "initContainers": copy.deepcopy(self.init_containers),
            "containers": copy.deepcopy(self.containers),
        }
        if self.set_halt_height:
            out["setHaltHeight"] = True
        return out

    @classmethod
    def from_dict(cls, data: Any) -> ChainVersion:
        data = _mapping(data, "version")
        return cls(
            upgrade_height=_uint(data.get("height", 0), "height"),
            image=str(data.get("image", "")),
            init_containers=_str_map(data.get("initContainers"), "initContainers"),
            containers=_str_map(data.get("containers"), "containers"),
            set_halt_height=bool(data.get("setHaltHeight", False)),
        )


@dataclass
class CometConfig:
    """Settings applied to config.toml."""

    persistent_peers: str = ""
    seeds: str = ""
    private_peer_ids: str = ""
    unconditional_peer_ids: str = ""
    max_inbound_peers: int | None = None
    max_outbound_peers: int | None = None
    cors_allowed_origins: list[str] | None = None
    toml_overrides: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "peers": self.persistent_peers,
            "seeds": self.seeds,
            "privatePeerIDs": self.private_peer_ids,
            "unconditionalPeerIDs": self.unconditional_peer_ids,
            "maxInboundPeers": self.max_inbound_peers,
            "maxOutboundPeers": self.max_outbound_peers,
            "corsAllowedOrigins": copy.deepcopy(self.cors_allowed_origins),
            "overrides": self.toml_overrides,
        }

    @classmethod
    def from_dict(cls, data: Any) -> CometConfig:
        data = _mapping(data, "config")
        return cls(
            persistent_peers=str(data.get("peers", "")),
            seeds=str(data.get("seeds", "")),
            private_peer_ids=str(data.get("privatePeerIDs", "")),
            unconditional_peer_ids=str(data.get("unconditionalPeerIDs", "")),
            max_inbound_peers=_opt_int(data.get("maxInboundPeers")),
            max_outbound_peers=_opt_int(data.get("maxOutboundPeers")),
            cors_allowed_origins=_str_list(data.get("corsAllowedOrigins"), "corsAllowedOrigins"),
            toml_overrides=_opt_str(data.get("overrides")),
        )


@dataclass
class Pruning:
    """Pruning settings of the application state."""

    strategy: PruningStrategy | None = None
    interval: int | None = None
    keep_every: int | None = None
    keep_recent: int | None = None
    min_retain_blocks: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "strategy": _enum_value(self.strategy),
            "interval": self.interval,
            "keepEvery": self.keep_every,
            "keepRecent": self.keep_recent,
            "minRetainBlocks": self.min_retain_blocks,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Pruning:
        data = _mapping(data, "pruning")
        return cls(
            strategy=_opt_enum(PruningStrategy, data.get("strategy")),
            interval=_opt_uint(data.get("interval"), "interval"),
            keep_every=_opt_uint(data.get("keepEvery"), "keepEvery"),
            keep_recent=_opt_uint(data.get("keepRecent"), "keepRecent"),
            min_retain_blocks=_opt_uint(data.get("minRetainBlocks"), "minRetainBlocks"),
        )


@dataclass
class SDKAppConfig:
    """Settings applied to app.toml."""

    min_gas_price: str = ""
    api_enable_unsafe_cors: bool = False
    grpc_web_enable_unsafe_cors: bool = False
    pruning: Pruning | None = None
    halt_height: int | None = None
    toml_overrides: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "minGasPrice": self.min_gas_price,
            "apiEnableUnsafeCORS": self.api_enable_unsafe_cors,
            "grpcWebEnableUnsafeCORS": self.grpc_web_enable_unsafe_cors,
            "pruning": None if self.pruning is None else self.pruning.to_dict(),
            "haltHeight": self.halt_height,
            "overrides": self.toml_overrides,
        }

    @classmethod
    def from_dict(cls, data: Any) -> SDKAppConfig:
        data = _mapping(data, "app")
        pruning = data.get("pruning")
        return cls(
            min_gas_price=str(data.get("minGasPrice", "")),
            api_enable_unsafe_cors=bool(data.get("apiEnableUnsafeCORS", False)),
            grpc_web_enable_unsafe_cors=bool(data.get("grpcWebEnableUnsafeCORS", False)),
            pruning=None if pruning is None else Pruning.from_dict(pruning),
            halt_height=_opt_uint(data.get("haltHeight"), "haltHeight"),
            toml_overrides=_opt_str(data.get("overrides")),
        )


@dataclass
class ChainSpec:
    """Blockchain-specific configuration."""

    chain_id: str = ""
    network: str = ""
    binary: str = ""
    home_dir: str = ""
    comet: CometConfig = field(default_factory=CometConfig)
    app: SDKAppConfig = field(default_factory=SDKAppConfig)
    log_level: str | None = None
    log_format: str | None = None
    addrbook_url: str | None = None
    addrbook_script: str | None = None
    genesis_url: str | None = None
    genesis_script: str | None = None
    skip_invariants: bool = False
    snapshot_url: str | None = None
    snapshot_script: str | None = None
    privval_sleep_seconds: int | None = None
    database_backend: str | None = None
    versions: list[ChainVersion] | None = None
    additional_init_args: list[str] | None = None
    additional_start_args: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "chainID": self.chain_id,
            "network": self.network,
            "binary": self.binary,
            "homeDir": self.home_dir,
            "config": self.comet.to_dict(),
            "app": self.app.to_dict(),
            "logLevel": self.log_level,
            "logFormat": self.log_format,
            "addrbookURL": self.addrbook_url,
            "addrbookScript": self.addrbook_script,
            "genesisURL": self.genesis_url,
            "genesisScript": self.genesis_script,
            "skipInvariants": self.skip_invariants,
            "snapshotURL": self.snapshot_url,
            "snapshotScript": self.snapshot_script,
            "privvalSleepSeconds": self.privval_sleep_seconds,
            "databaseBackend": self.database_backend,
            "versions": (
                None if self.versions is None else [v.to_dict() for v in self.versions]
            ),
            "additionalInitArgs": copy.deepcopy(self.additional_init_args),
            "additionalStartArgs": copy.deepcopy(self.additional_start_args),
        }

    @classmethod
    def from_dict(cls, data: Any) -> ChainSpec:
        data = _mapping(data, "chain")
        versions = data.get("versions")
        if versions is not None and not isinstance(versions, list):
            raise TypeError(f"versions: expected a list, got {type(versions).__name__}")
        return cls(
            chain_id=str(data.get("chainID", "")),
            network=str(data.get("network", "")),
            binary=str(data.get("binary", "")),
            home_dir=str(data.get("homeDir", "")),
            comet=CometConfig.from_dict(data.get("config")),
            app=SDKAppConfig.from_dict(data.get("app")),
            log_level=_opt_str(data.get("logLevel")),
            log_format=_opt_str(data.get("logFormat")),
            addrbook_url=_opt_str(data.get("addrbookURL")),
            addrbook_script=_opt_str(data.get("addrbookScript")),
            genesis_url=_opt_str(data.get("genesisURL")),
            genesis_script=_opt_str(data.get("genesisScript")),
            skip_invariants=bool(data.get("skipInvariants", False)),
            snapshot_url=_opt_str(data.get("snapshotURL")),
            snapshot_script=_opt_str(data.get("snapshotScript")),
            privval_sleep_seconds=_opt_int(data.get("privvalSleepSeconds")),
            database_backend=_opt_str(data.get("databaseBackend")),
            versions=None if versions is None else [ChainVersion.from_dict(v) for v in versions],
            additional_init_args=_str_list(data.get("additionalInitArgs"), "additionalInitArgs"),
            additional_start_args=_str_list(
                data.get("additionalStartArgs"), "additionalStartArgs"
            ),
        )


@dataclass
class FullNodeSpec:
    """Desired state of a CosmosFullNode."""

    replicas: int = 0
    type: FullNodeType | None = None
    chain: ChainSpec = field(default_factory=ChainSpec)
    pod_template: PodSpec = field(default_factory=PodSpec)
    rollout_strategy: RolloutStrategy = field(default_factory=RolloutStrategy)
    volume_claim_template: PersistentVolumeClaimSpec = field(
        default_factory=PersistentVolumeClaimSpec
    )
    retention_policy: RetentionPolicy | None = None
    service: ServiceSpec = field(default_factory=ServiceSpec)
    instance_overrides: dict[str, InstanceOverridesSpec] | None = None
    self_heal: SelfHealSpec | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "replicas": self.replicas,
            "type": _enum_value(self.type),
            "chain": self.chain.to_dict(),
            "podTemplate": self.pod_template.to_dict(),
            "strategy": self.rollout_strategy.to_dict(),
            "volumeClaimTemplate": self.volume_claim_template.to_dict(),
            "volumeRetentionPolicy": (
                None if self.retention_policy is None else self.retention_policy.value
            ),
            "service": self.service.to_dict(),
            "instanceOverrides": (
                None
                if self.instance_overrides is None
                else {k: v.to_dict() for k, v in self.instance_overrides.items()}
            ),
            "selfHeal": None if self.self_heal is None else self.self_heal.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> FullNodeSpec:
        data = _mapping(data, "spec")
        replicas = int(data.get("replicas", 0))
        if replicas < 0:
            raise ValueError(f"replicas: must not be negative, got {replicas}")
        overrides = data.get("instanceOverrides")
        self_heal = data.get("selfHeal")
        return cls(
            replicas=replicas,
            type=_opt_enum(FullNodeType, data.get("type")),
            chain=ChainSpec.from_dict(data.get("chain")),
            pod_template=PodSpec.from_dict(data.get("podTemplate")),
            rollout_strategy=RolloutStrategy.from_dict(data.get("strategy")),
            volume_claim_template=PersistentVolumeClaimSpec.from_dict(
                data.get("volumeClaimTemplate")
            ),
            retention_policy=_opt_enum(RetentionPolicy, data.get("volumeRetentionPolicy")),
            service=ServiceSpec.from_dict(data.get("service")),
            instance_overrides=(
                None
                if overrides is None
                else {
                    str(k): InstanceOverridesSpec.from_dict(v)
                    for k, v in _mapping(overrides, "instanceOverrides").items()
                }
            ),
            self_heal=None if self_heal is None else SelfHealSpec.from_dict(self_heal),
        )


@dataclass
class SyncInfoPodStatus:
    """Consensus information of one pod at a point in time."""

    timestamp: datetime | None = None
    height: int | None = None
    in_sync: bool | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"timestamp": _format_time(self.timestamp)}
        if self.height is not None:
            out["height"] = self.height
        if self.in_sync is not None:
            out["inSync"] = self.in_sync
        if self.error is not None:
            out["error"] = self.error
        return out

    @classmethod
    def from_dict(cls, data: Any) -> SyncInfoPodStatus:
        data = _mapping(data, "sync")
        return cls(
            timestamp=_parse_time(data.get("timestamp")),
            height=_opt_uint(data.get("height"), "height"),
            in_sync=_opt_bool(data.get("inSync")),
            error=_opt_str(data.get("error")),
        )


@dataclass
class FullNodeSnapshotStatus:
    """Pod to delete temporarily while a volume snapshot is taken."""

    pod_candidate: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"podCandidate": self.pod_candidate}

    @classmethod
    def from_dict(cls, data: Any) -> FullNodeSnapshotStatus:
        data = _mapping(data, "scheduledSnapshotStatus")
        return cls(pod_candidate=str(data.get("podCandidate", "")))


@dataclass
class FullNodeStatus:
    """Observed state of a CosmosFullNode."""

    observed_generation: int = 0
    phase: FullNodePhase | None = None
    status_message: str | None = None
    scheduled_snapshot_status: dict[str, FullNodeSnapshotStatus] | None = None
    self_healing: SelfHealingStatus = field(default_factory=SelfHealingStatus)
    peers: list[str] | None = None
    sync_info: dict[str, SyncInfoPodStatus | None] | None = None
    height: dict[str, int] | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "observedGeneration": self.observed_generation,
            "phase": _enum_value(self.phase),
            "status": self.status_message,
            "scheduledSnapshotStatus": (
                None
                if self.scheduled_snapshot_status is None
                else {k: v.to_dict() for k, v in self.scheduled_snapshot_status.items()}
            ),
            "selfHealing": self.self_healing.to_dict(),
            "peers": copy.deepcopy(self.peers),
        }
        if self.sync_info:
            out["sync"] = {
                k: None if v is None else v.to_dict() for k, v in self.sync_info.items()
            }
        if self.height:
            out["height"] = dict(self.height)
        return out

    @classmethod
    def from_dict(cls, data: Any) -> FullNodeStatus:
        data = _mapping(data, "status")
        snapshots = data.get("scheduledSnapshotStatus")
        sync = data.get("sync")
        height = data.get("height")
        return cls(
            observed_generation=int(data.get("observedGeneration", 0)),
            phase=_opt_enum(FullNodePhase, data.get("phase")),
            status_message=_opt_str(data.get("status")),
            scheduled_snapshot_status=(
                None
                if snapshots is None
                else {
                    str(k): FullNodeSnapshotStatus.from_dict(v)
                    for k, v in _mapping(snapshots, "scheduledSnapshotStatus").items()
                }
            ),
            self_healing=SelfHealingStatus.from_dict(data.get("selfHealing")),
            peers=_str_list(data.get("peers"), "peers"),
            sync_info=(
                None
                if sync is None
                else {
                    str(k): None if v is None else SyncInfoPodStatus.from_dict(v)
                    for k, v in _mapping(sync, "sync").items()
                }
            ),
            height=(
                None
                if height is None
                else {
                    str(k): _uint(v, "height") for k, v in _mapping(height, "height").items()
                }
            ),
        )


@dataclass
class CosmosFullNode:
    """A fleet of Cosmos full nodes or sentries."""

    name: str = ""
    namespace: str = ""
    uid: str = ""
    generation: int = 0
    resource_version: str = ""
    labels: dict[str, str] | None = None
    annotations: dict[str, str] | None = None
    spec: FullNodeSpec = field(default_factory=FullNodeSpec)
    status: FullNodeStatus = field(default_factory=FullNodeStatus)

    KIND = "CosmosFullNode"

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
    def from_dict(cls, data: Any) -> CosmosFullNode:
        """Build the object from its API representation."""
        data = _mapping(data, "CosmosFullNode")
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
            spec=FullNodeSpec.from_dict(data.get("spec")),
            status=FullNodeStatus.from_dict(data.get("status")),
        )

    def deep_copy(self) -> CosmosFullNode:
        """Return an independent copy of the object."""
        return copy.deepcopy(self)