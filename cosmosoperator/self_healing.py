"""Self-healing settings and status of a CosmosFullNode.

The self-healing part of a CosmosFullNode is managed by its own controller,
which only ever changes the status; the full node controller acts on it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

SELF_HEALING_CONTROLLER = "SelfHealing"

_ZERO_QUANTITY = "0"


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeError(f"{what}: expected a mapping, got {type(data).__name__}")
    return data


def _quantity(value: Any) -> str:
    if value is None or value == "":
        return _ZERO_QUANTITY
    return str(value)


def _format_time(ts: datetime | None) -> str | None:
    """Render a timestamp as RFC 3339 in UTC with second precision."""
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
class PVCAutoScaleSpec:
    """Grow PVCs automatically as they approach capacity."""

    used_space_percentage: int = 0
    increase_quantity: str = ""
    max_size: str = _ZERO_QUANTITY

    def to_dict(self) -> dict[str, Any]:
        return {
            "usedSpacePercentage": self.used_space_percentage,
            "increaseQuantity": self.increase_quantity,
            "maxSize": self.max_size,
        }

    @classmethod
    def from_dict(cls, data: Any) -> PVCAutoScaleSpec:
        data = _mapping(data, "pvcAutoScale")
        return cls(
            used_space_percentage=int(data.get("usedSpacePercentage", 0)),
            increase_quantity=str(data.get("increaseQuantity", "")),
            max_size=_quantity(data.get("maxSize")),
        )


@dataclass
class HeightDriftMitigationSpec:
    """Delete pods whose height lags the tallest pod by threshold or more."""

    threshold: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"threshold": self.threshold}

    @classmethod
    def from_dict(cls, data: Any) -> HeightDriftMitigationSpec:
        data = _mapping(data, "heightDriftMitigation")
        return cls(threshold=int(data.get("threshold", 0)))


@dataclass
class SelfHealSpec:
    """Strategies for automatic recovery of faults and errors."""

    pvc_auto_scale: PVCAutoScaleSpec | None = None
    height_drift_mitigation: HeightDriftMitigationSpec | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "pvcAutoScale": None if self.pvc_auto_scale is None else self.pvc_auto_scale.to_dict(),
            "heightDriftMitigation": (
                None
                if self.height_drift_mitigation is None
                else self.height_drift_mitigation.to_dict()
            ),
        }

    @classmethod
    def from_dict(cls, data: Any) -> SelfHealSpec:
        data = _mapping(data, "selfHeal")
        scale = data.get("pvcAutoScale")
        drift = data.get("heightDriftMitigation")
        return cls(
            pvc_auto_scale=None if scale is None else PVCAutoScaleSpec.from_dict(scale),
            height_drift_mitigation=(
                None if drift is None else HeightDriftMitigationSpec.from_dict(drift)
            ),
        )


@dataclass
class PVCAutoScaleStatus:
    """A PVC size requested by the self-healing controller and when."""

    requested_size: str = _ZERO_QUANTITY
    requested_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "requestedSize": self.requested_size,
            "requestedAt": _format_time(self.requested_at),
        }

    @classmethod
    def from_dict(cls, data: Any) -> PVCAutoScaleStatus:
        data = _mapping(data, "pvcAutoScaler status")
        return cls(
            requested_size=_quantity(data.get("requestedSize")),
            requested_at=_parse_time(data.get("requestedAt")),
        )


@dataclass
class SelfHealingStatus:
    """Status written by the self-healing controller."""

    pvc_auto_scale: dict[str, PVCAutoScaleStatus | None] | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.pvc_auto_scale is None:
            return {"pvcAutoScaler": None}
        return {
            "pvcAutoScaler": {
                name: None if status is None else status.to_dict()
                for name, status in self.pvc_auto_scale.items()
            }
        }

    @classmethod
    def from_dict(cls, data: Any) -> SelfHealingStatus:
        data = _mapping(data, "selfHealing")
        raw = data.get("pvcAutoScaler")
        if raw is None:
            return cls()
        raw = _mapping(raw, "pvcAutoScaler")
        return cls(
            pvc_auto_scale={
                str(name): None if status is None else PVCAutoScaleStatus.from_dict(status)
                for name, status in raw.items()
            }
        )