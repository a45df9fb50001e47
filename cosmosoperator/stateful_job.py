"""The StatefulJob resource of the cosmos.strange.love/v1alpha1 API group."""

from __future__ import annotations

import copy
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from cosmosoperator.scheduled_volume_snapshot import GROUP_VERSION

STATEFUL_JOB_CONTROLLER = "StatefulJob"

_US_PER_UNIT = {
    "ns": Decimal("0.001"),
    "us": Decimal(1),
    "\u00b5s": Decimal(1),
    "\u03bcs": Decimal(1),
    "ms": Decimal(1_000),
    "s": Decimal(1_000_000),
    "m": Decimal(60_000_000),
    "h": Decimal(3_600_000_000),
}

_DURATION = re.compile(r"(?:(?:\d+\.?\d*|\.\d+)(?:ns|us|\u00b5s|\u03bcs|ms|s|m|h))+")
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|\u00b5s|\u03bcs|ms|s|m|h)")


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


def _opt_int(value: Any) -> int | None:
    return None if value is None else int(value)


def _parse_duration(value: Any) -> timedelta:
    """Parse a duration string such as "1.5h" or "24h0m0s"."""
    if value is None or value == "":
        return timedelta(0)
    if isinstance(value, timedelta):
        return value
    if not isinstance(value, str):
        raise TypeError(f"interval: expected a duration string, got {type(value).__name__}")
    text = value
    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not _DURATION.fullmatch(text):
        raise ValueError(f"interval: invalid duration {value!r}")
    try:
        total = sum(
            (Decimal(number) * _US_PER_UNIT[unit] for number, unit in _DURATION_PART.findall(text)),
            Decimal(0),
        )
    except InvalidOperation as exc:
        raise ValueError(f"interval: invalid duration {value!r}") from exc
    return timedelta(microseconds=sign * int(total.to_integral_value()))


def _trim(value: int, per: int) -> str:
    whole, frac = divmod(value, per)
    if not frac:
        return str(whole)
    digits = len(str(per)) - 1
    return f"{whole}.{frac:0{digits}d}".rstrip("0")


def _format_duration(interval: timedelta) -> str:
    """Render a duration in the "1h30m0s" form."""
    micros = interval // timedelta(microseconds=1)
    if micros == 0:
        return "0s"
    sign = "-" if micros < 0 else ""
    micros = abs(micros)
    if micros < 1_000:
        return f"{sign}{micros}\u00b5s"
    if micros < 1_000_000:
        return f"{sign}{_trim(micros, 1_000)}ms"
    hours, rest = divmod(micros, 3_600_000_000)
    minutes, rest = divmod(rest, 60_000_000)
    seconds = _trim(rest, 1_000_000) + "s"
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}"
    if minutes:
        return f"{sign}{minutes}m{seconds}"
    return sign + seconds


@dataclass
class JobTemplateSpec:
    """The subset of a Job spec that can be configured."""

    active_deadline_seconds: int | None = None
    backoff_limit: int | None = None
    ttl_seconds_after_finished: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "activeDeadlineSeconds": self.active_deadline_seconds,
            "backoffLimit": self.backoff_limit,
            "ttlSecondsAfterFinished": self.ttl_seconds_after_finished,
        }

    @classmethod
    def from_dict(cls, data: Any) -> JobTemplateSpec:
        data = _mapping(data, "jobTemplate")
        return cls(
            active_deadline_seconds=_opt_int(data.get("activeDeadlineSeconds")),
            backoff_limit=_opt_int(data.get("backoffLimit")),
            ttl_seconds_after_finished=_opt_int(data.get("ttlSecondsAfterFinished")),
        )


@dataclass
class StatefulJobVolumeClaimTemplate:
    """The subset of a PVC template used for the job's volume."""

    storage_class_name: str = ""
    access_modes: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "storageClassName": self.storage_class_name,
            "accessModes": copy.deepcopy(self.access_modes),
        }

    @classmethod
    def from_dict(cls, data: Any) -> StatefulJobVolumeClaimTemplate:
        data = _mapping(data, "volumeClaimTemplate")
        modes = _list(data.get("accessModes"), "accessModes")
        return cls(
            storage_class_name=str(data.get("storageClassName", "")),
            access_modes=None if modes is None else [str(m) for m in modes],
        )


@dataclass
class StatefulJobSpec:
    """Desired state of a StatefulJob."""

    selector: dict[str, str] | None = None
    interval: timedelta = field(default_factory=timedelta)
    job_template: JobTemplateSpec = field(default_factory=JobTemplateSpec)
    pod_template: dict[str, Any] = field(default_factory=dict)
    volume_claim_template: StatefulJobVolumeClaimTemplate = field(
        default_factory=StatefulJobVolumeClaimTemplate
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "selector": copy.deepcopy(self.selector),
            "interval": _format_duration(self.interval),
            "jobTemplate": self.job_template.to_dict(),
            "podTemplate": copy.deepcopy(self.pod_template),
            "volumeClaimTemplate": self.volume_claim_template.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> StatefulJobSpec:
        data = _mapping(data, "spec")
        return cls(
            selector=_str_map(data.get("selector"), "selector"),
            interval=_parse_duration(data.get("interval")),
            job_template=JobTemplateSpec.from_dict(data.get("jobTemplate")),
            pod_template=copy.deepcopy(dict(_mapping(data.get("podTemplate"), "podTemplate"))),
            volume_claim_template=StatefulJobVolumeClaimTemplate.from_dict(
                data.get("volumeClaimTemplate")
            ),
        )


@dataclass
class StatefulJobStatus:
    """Observed state of a StatefulJob."""

    observed_generation: int = 0
    status_message: str | None = None
    job_history: list[dict[str, Any]] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "observedGeneration": self.observed_generation,
            "status": self.status_message,
            "jobHistory": copy.deepcopy(self.job_history),
        }

    @classmethod
    def from_dict(cls, data: Any) -> StatefulJobStatus:
        data = _mapping(data, "status")
        message = data.get("status")
        return cls(
            observed_generation=int(data.get("observedGeneration", 0)),
            status_message=None if message is None else str(message),
            job_history=_list(data.get("jobHistory"), "jobHistory"),
        )


@dataclass
class StatefulJob:
    """Runs a job against a PVC restored from the latest matching VolumeSnapshot."""

    name: str = ""
    namespace: str = ""
    uid: str = ""
    generation: int = 0
    resource_version: str = ""
    labels: dict[str, str] | None = None
    annotations: dict[str, str] | None = None
    spec: StatefulJobSpec = field(default_factory=StatefulJobSpec)
    status: StatefulJobStatus = field(default_factory=StatefulJobStatus)

    KIND = "StatefulJob"

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
    def from_dict(cls, data: Any) -> StatefulJob:
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
            spec=StatefulJobSpec.from_dict(data.get("spec")),
            status=StatefulJobStatus.from_dict(data.get("status")),
        )

    def deep_copy(self) -> StatefulJob:
        """Return an independent copy of the object."""
        return copy.deepcopy(self)