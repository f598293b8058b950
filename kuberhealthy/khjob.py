"""The khjob resource: configuration of an external checker run once."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from kuberhealthy.meta import ObjectMeta


class JobPhase(str, Enum):
    """The valid phases of a job."""

    RUNNING = "Running"
    COMPLETED = "Completed"


def _phase(value: str | None) -> JobPhase | str:
    if not value:
        return ""
    try:
        return JobPhase(value)
    except ValueError:
        return value


def _type_meta(api_version: str, kind: str) -> dict[str, str]:
    out: dict[str, str] = {}
    if api_version:
        out["apiVersion"] = api_version
    if kind:
        out["kind"] = kind
    return out


@dataclass
class JobConfig:
    """How a job runs: its phase, timeout, pod spec and extra pod metadata."""

    phase: JobPhase | str = ""
    timeout: str = ""
    pod_spec: dict[str, Any] = field(default_factory=dict)
    extra_annotations: dict[str, str] = field(default_factory=dict)
    extra_labels: dict[str, str] = field(default_factory=dict)

    def deep_copy(self) -> "JobConfig":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        phase = self.phase.value if isinstance(self.phase, JobPhase) else self.phase
        return {
            "phase": phase,
            "timeout": self.timeout,
            "podSpec": copy.deepcopy(self.pod_spec),
            "extraAnnotations": dict(self.extra_annotations),
            "extraLabels": dict(self.extra_labels),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "JobConfig":
        data = data or {}
        return cls(
            phase=_phase(data.get("phase")),
            timeout=data.get("timeout", ""),
            pod_spec=copy.deepcopy(data.get("podSpec") or {}),
            extra_annotations=dict(data.get("extraAnnotations") or {}),
            extra_labels=dict(data.get("extraLabels") or {}),
        )


@dataclass
class KuberhealthyJob:
    """A khjob resource."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: JobConfig = field(default_factory=JobConfig)
    api_version: str = ""
    kind: str = ""

    def deep_copy(self) -> "KuberhealthyJob":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = _type_meta(self.api_version, self.kind)
        out["metadata"] = self.metadata.to_dict()
        out["spec"] = self.spec.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "KuberhealthyJob":
        data = data or {}
        return cls(
            metadata=ObjectMeta.from_dict(data.get("metadata")),
            spec=JobConfig.from_dict(data.get("spec")),
            api_version=data.get("apiVersion", ""),
            kind=data.get("kind", ""),
        )


def new_kuberhealthy_job(name: str, namespace: str, spec: JobConfig) -> KuberhealthyJob:
    """Create a khjob resource with the given name, namespace and spec."""
    return KuberhealthyJob(metadata=ObjectMeta(name=name, namespace=namespace), spec=spec)


@dataclass
class KuberhealthyJobList:
    """A list of khjob resources."""

    items: list[KuberhealthyJob] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    api_version: str = ""
    kind: str = ""

    def deep_copy(self) -> "KuberhealthyJobList":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = _type_meta(self.api_version, self.kind)
        out["metadata"] = dict(self.metadata)
        out["items"] = [item.to_dict() for item in self.items]
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "KuberhealthyJobList":
        data = data or {}
        return cls(
            items=[KuberhealthyJob.from_dict(item) for item in data.get("items") or []],
            metadata=dict(data.get("metadata") or {}),
            api_version=data.get("apiVersion", ""),
            kind=data.get("kind", ""),
        )