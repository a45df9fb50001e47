from datetime import datetime, timedelta, timezone

import pytest

from cosmosoperator.self_healing import (
    HeightDriftMitigationSpec,
    PVCAutoScaleSpec,
    PVCAutoScaleStatus,
    SelfHealingStatus,
    SelfHealSpec,
)


def test_empty_spec_serializes_null_members():
    assert SelfHealSpec().to_dict() == {"pvcAutoScale": None, "heightDriftMitigation": None}


def test_spec_round_trip():
    spec = SelfHealSpec(
        pvc_auto_scale=PVCAutoScaleSpec(
            used_space_percentage=80, increase_quantity="20%", max_size="2000Gi"
        ),
        height_drift_mitigation=HeightDriftMitigationSpec(threshold=25),
    )
    assert SelfHealSpec.from_dict(spec.to_dict()) == spec


def test_spec_from_dict_reads_wire_keys():
    spec = SelfHealSpec.from_dict(
        {
            "pvcAutoScale": {"usedSpacePercentage": 90, "increaseQuantity": "100Gi"},
            "heightDriftMitigation": {"threshold": 10},
        }
    )
    assert spec.pvc_auto_scale.used_space_percentage == 90
    assert spec.pvc_auto_scale.increase_quantity == "100Gi"
    assert spec.height_drift_mitigation.threshold == 10


def test_missing_max_size_is_zero_quantity():
    spec = PVCAutoScaleSpec.from_dict({"usedSpacePercentage": 50})
    assert spec.max_size == "0"
    assert spec.to_dict()["maxSize"] == "0"


def test_spec_from_none_gives_defaults():
    assert SelfHealSpec.from_dict(None) == SelfHealSpec()


@pytest.mark.parametrize("bad", [[1, 2], "pvc", 3])
def test_spec_rejects_non_mapping(bad):
    with pytest.raises(TypeError):
        SelfHealSpec.from_dict(bad)


def test_status_time_format():
    ts = datetime(2023, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    status = PVCAutoScaleStatus(requested_size="120Gi", requested_at=ts)
    assert status.to_dict() == {"requestedSize": "120Gi", "requestedAt": "2023-01-02T03:04:05Z"}


def test_status_time_converted_to_utc():
    ts = datetime(2023, 1, 2, 5, 4, 5, tzinfo=timezone(timedelta(hours=2)))
    status = PVCAutoScaleStatus(requested_size="1Gi", requested_at=ts)
    parsed = PVCAutoScaleStatus.from_dict(status.to_dict())
    assert parsed.requested_at == ts
    assert parsed.requested_at.tzinfo == timezone.utc


def test_status_zero_time_is_null():
    assert PVCAutoScaleStatus().to_dict()["requestedAt"] is None
    assert PVCAutoScaleStatus.from_dict({"requestedAt": None}).requested_at is None


def test_bad_time_raises():
    with pytest.raises(ValueError):
        PVCAutoScaleStatus.from_dict({"requestedAt": "yesterday"})


def test_self_healing_status_round_trip():
    ts = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
    status = SelfHealingStatus(
        pvc_auto_scale={
            "pvc-cosmos-0": PVCAutoScaleStatus(requested_size="200Gi", requested_at=ts),
            "pvc-cosmos-1": None,
        }
    )
    data = status.to_dict()
    assert set(data["pvcAutoScaler"]) == {"pvc-cosmos-0", "pvc-cosmos-1"}
    assert data["pvcAutoScaler"]["pvc-cosmos-1"] is None
    assert SelfHealingStatus.from_dict(data) == status


def test_self_healing_status_nil_map():
    assert SelfHealingStatus().to_dict() == {"pvcAutoScaler": None}
    assert SelfHealingStatus.from_dict({}).pvc_auto_scale is None