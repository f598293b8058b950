"""The khstate resource: the recorded status of a check or job."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from kuberhealthy.meta import ObjectMeta, _format_time, _parse_time


class KHWorkload(str, Enum):
    """The kinds of workload: checks run on an interval, jobs run once."""

    KHCHECK = "KHCheck"
    KHJOB = "KHJob"


@dataclass
class WorkloadDetails:
    """Details about the current status of a single check or job."""

    ok: bool = False
    errors: list[str] = field(default_factory=list)
    run_duration: str = ""
    namespace: str = ""
    node: str = ""
    last_run: datetime | None = None
    authoritative_pod: str = ""
    current_uuid: str = ""
    kh_workload: KHWorkload | None = None

    def get_kh_workload(self) -> KHWorkload:
        """Return the workload type; raises ValueError if it was never set."""
        if not self.kh_workload:
            raise ValueError(
                "Fetched a workload type from a WorkloadDetails struct, but it was blank!"
            )
        return self.kh_workload

    def deep_copy(self) -> "WorkloadDetails":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form. The workload type is not serialised."""
        out: dict[str, Any] = {
            "OK": self.ok,
            "Errors": list(self.errors),
            "RunDuration": self.run_duration,
            "Namespace": self.namespace,
            "Node": self.node,
        }
        if self.last_run is not None:
            out["LastRun"] = _format_time(self.last_run)
        out["AuthoritativePod"] = self.authoritative_pod
        out["uuid"] = self.current_uuid
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "WorkloadDetails":
        data = data or {}
        return cls(
            ok=bool(data.get("OK", False)),
            errors=list(data.get("Errors") or []),
            run_duration=data.get("RunDuration", ""),
            namespace=data.get("Namespace", ""),
            node=data.get("Node", ""),
            last_run=_parse_time(data.get("LastRun")),
            authoritative_pod=data.get("AuthoritativePod", ""),
            current_uuid=data.get("uuid", ""),
        )


def new_workload_details(workload_type: KHWorkload | str) -> WorkloadDetails:
    """Create details for a workload of the given type; the type must not be empty."""
    if not workload_type:
        raise ValueError(
            "Creating workload details with empty workload type. "
            "This will probably cause errors when the struct is used."
        )
    return WorkloadDetails(errors=[], kh_workload=KHWorkload(workload_type))


def _type_meta(api_version: str, kind: str) -> dict[str, str]:
    out = {}
    if api_version:
        out["apiVersion"] = api_version
    if kind:
        out["kind"] = kind
    return out


@dataclass
class KuberhealthyState:
    """A khstate resource holding the details of one workload."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: WorkloadDetails = field(default_factory=WorkloadDetails)
    api_version: str = ""
    kind: str = ""

    def deep_copy(self) -> "KuberhealthyState":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = _type_meta(self.api_version, self.kind)
        out["metadata"] = self.metadata.to_dict()
        out["spec"] = self.spec.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "KuberhealthyState":
        data = data or {}
        return cls(
            metadata=ObjectMeta.from_dict(data.get("metadata")),
            spec=WorkloadDetails.from_dict(data.get("spec")),
            api_version=data.get("apiVersion", ""),
            kind=data.get("kind", ""),
        )


def new_kuberhealthy_state(name: str, spec: WorkloadDetails) -> KuberhealthyState:
    """Create a khstate resource with the given name and details."""
    return KuberhealthyState(metadata=ObjectMeta(name=name), spec=spec)


@dataclass
class KuberhealthyStateList:
    """A list of khstate resources."""

    items: list[KuberhealthyState] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    api_version: str = ""
    kind: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = _type_meta(self.api_version, self.kind)
        out["metadata"] = dict(self.metadata)
        out["items"] = [item.to_dict() for item in self.items]
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "KuberhealthyStateList":
        data = data or {}
        return cls(
            items=[KuberhealthyState.from_dict(item) for item in data.get("items") or []],
            metadata=dict(data.get("metadata") or {}),
            api_version=data.get("apiVersion", ""),
            kind=data.get("kind", ""),
        )