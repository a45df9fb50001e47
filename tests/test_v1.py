from datetime import datetime, timezone

import pytest

from cosmosoperator.self_healing import HeightDriftMitigationSpec, SelfHealSpec
from cosmosoperator.v1 import (
    COSMOS_FULL_NODE_CONTROLLER,
    GROUP_VERSION,
    ChainSpec,
    ChainVersion,
    CosmosFullNode,
    FullNodePhase,
    FullNodeSnapshotStatus,
    FullNodeSpec,
    FullNodeStatus,
    FullNodeType,
    GroupVersion,
    Pruning,
    PruningStrategy,
    SDKAppConfig,
    SyncInfoPodStatus,
)
from cosmosoperator.v1_pod import InstanceOverridesSpec, RetentionPolicy


def _full_node() -> CosmosFullNode:
    return CosmosFullNode(
        name="cosmoshub",
        namespace="strangelove",
        generation=3,
        labels={"app": "cosmoshub"},
        spec=FullNodeSpec(
            replicas=3,
            type=FullNodeType.SENTRY,
            chain=ChainSpec(
                chain_id="cosmoshub-4",
                network="mainnet",
                binary="gaiad",
                app=SDKAppConfig(
                    min_gas_price="0.001uatom",
                    pruning=Pruning(strategy=PruningStrategy.CUSTOM, interval=10, keep_recent=100),
                    halt_height=500,
                ),
                versions=[
                    ChainVersion(upgrade_height=0, image="gaia:v1"),
                    ChainVersion(upgrade_height=100, image="gaia:v2", set_halt_height=True),
                ],
                additional_start_args=["--x-crisis-skip-assert-invariants"],
            ),
            retention_policy=RetentionPolicy.RETAIN,
            instance_overrides={"cosmoshub-0": InstanceOverridesSpec(image="gaia:debug")},
            self_heal=SelfHealSpec(height_drift_mitigation=HeightDriftMitigationSpec(threshold=10)),
        ),
        status=FullNodeStatus(
            observed_generation=3,
            phase=FullNodePhase.COMPLETE,
            status_message="ok",
            scheduled_snapshot_status={"snap": FullNodeSnapshotStatus(pod_candidate="cosmoshub-1")},
            peers=["a@1.2.3.4:26656"],
            sync_info={
                "cosmoshub-0": SyncInfoPodStatus(
                    timestamp=datetime(2023, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
                    height=42,
                    in_sync=True,
                )
            },
            height={"cosmoshub-0": 43},
        ),
    )


def test_group_version_api_version():
    assert GROUP_VERSION.api_version() == "cosmos.strange.love/v1"
    assert GroupVersion(group="", version="v1").api_version() == "v1"


def test_controller_name():
    out = CosmosFullNode().to_dict()
    assert out["kind"] == COSMOS_FULL_NODE_CONTROLLER == "CosmosFullNode"


def test_enum_wire_values():
    assert FullNodePhase("WaitingForP2PServices") is FullNodePhase.P2P_SERVICES
    assert FullNodePhase("TransientError") is FullNodePhase.TRANSIENT_ERROR
    assert FullNodeType("Sentry") is FullNodeType.SENTRY
    assert PruningStrategy("nothing") is PruningStrategy.NOTHING


def test_round_trip():
    crd = _full_node()
    assert CosmosFullNode.from_dict(crd.to_dict()) == crd


def test_to_dict_header_and_keys():
    out = _full_node().to_dict()
    assert out["apiVersion"] == "cosmos.strange.love/v1"
    assert out["kind"] == "CosmosFullNode"
    assert out["metadata"]["name"] == "cosmoshub"
    assert out["spec"]["type"] == "Sentry"
    assert out["spec"]["volumeRetentionPolicy"] == "Retain"
    assert out["spec"]["chain"]["chainID"] == "cosmoshub-4"
    assert out["spec"]["chain"]["versions"][1]["height"] == 100
    assert out["spec"]["chain"]["versions"][1]["setHaltHeight"] is True
    assert "setHaltHeight" not in out["spec"]["chain"]["versions"][0]
    assert out["status"]["phase"] == "Complete"
    assert out["status"]["sync"]["cosmoshub-0"]["timestamp"] == "2023-01-02T03:04:05Z"
    assert out["status"]["height"] == {"cosmoshub-0": 43}


def test_empty_status_omits_sync_and_height():
    out = CosmosFullNode().to_dict()
    assert "sync" not in out["status"]
    assert "height" not in out["status"]
    assert out["status"]["phase"] == ""
    assert out["metadata"] == {}


def test_sync_info_omits_unset_fields():
    assert SyncInfoPodStatus().to_dict() == {"timestamp": None}


def test_from_dict_defaults():
    crd = CosmosFullNode.from_dict({})
    assert crd == CosmosFullNode()
    assert crd.spec.type is None
    assert crd.status.phase is None
    assert crd.spec.self_heal is None


def test_deep_copy_is_independent():
    crd = _full_node()
    clone = crd.deep_copy()
    assert clone == crd
    clone.status.height["cosmoshub-0"] = 1
    clone.spec.chain.versions.append(ChainVersion(upgrade_height=200, image="gaia:v3"))
    assert crd.status.height["cosmoshub-0"] == 43
    assert len(crd.spec.chain.versions) == 2


def test_wrong_kind_raises():
    with pytest.raises(ValueError):
        CosmosFullNode.from_dict({"kind": "Pod"})


def test_wrong_api_version_raises():
    with pytest.raises(ValueError):
        CosmosFullNode.from_dict({"apiVersion": "v1"})


def test_unknown_phase_raises():
    with pytest.raises(ValueError):
        CosmosFullNode.from_dict({"status": {"phase": "Bogus"}})


def test_negative_height_raises():
    with pytest.raises(ValueError):
        CosmosFullNode.from_dict({"status": {"height": {"pod-0": -1}}})


def test_negative_replicas_raises():
    with pytest.raises(ValueError):
        CosmosFullNode.from_dict({"spec": {"replicas": -1}})


def test_non_mapping_spec_raises():
    with pytest.raises(TypeError):
        CosmosFullNode.from_dict({"spec": ["nope"]})


def test_versions_must_be_list():
    with pytest.raises(TypeError):
        ChainSpec.from_dict({"versions": "gaia:v1"})