"""The khcheck resource: configuration of an external check run on an interval."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from kuberhealthy.meta import ObjectMeta


def _type_meta(api_version: str, kind: str) -> dict[str, str]:
    out: dict[str, str] = {}
    if api_version:
        out["apiVersion"] = api_version
    if kind:
        out["kind"] = kind
    return out


@dataclass
class CheckConfig:
    """How a check runs: its interval, timeout, pod spec and extra pod metadata."""

    run_interval: str = ""
    timeout: str = ""
    pod_spec: dict[str, Any] = field(default_factory=dict)
    extra_annotations: dict[str, str] = field(default_factory=dict)
    extra_labels: dict[str, str] = field(default_factory=dict)

    def deep_copy(self) -> "CheckConfig":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "runInterval": self.run_interval,
            "timeout": self.timeout,
            "podSpec": copy.deepcopy(self.pod_spec),
            "extraAnnotations": dict(self.extra_annotations),
            "extraLabels": dict(self.extra_labels),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "CheckConfig":
        data = data or {}
        return cls(
            run_interval=data.get("runInterval", ""),
            timeout=data.get("timeout", ""),
            pod_spec=copy.deepcopy(data.get("podSpec") or {}),
            extra_annotations=dict(data.get("extraAnnotations") or {}),
            extra_labels=dict(data.get("extraLabels") or {}),
        )


@dataclass
class KuberhealthyCheck:
    """A khcheck resource."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: CheckConfig = field(default_factory=CheckConfig)
    api_version: str = ""
    kind: str = ""

    def deep_copy(self) -> "KuberhealthyCheck":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = _type_meta(self.api_version, self.kind)
        out["metadata"] = self.metadata.to_dict()
        out["spec"] = self.spec.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "KuberhealthyCheck":
        data = data or {}
        return cls(
            metadata=ObjectMeta.from_dict(data.get("metadata")),
            spec=CheckConfig.from_dict(data.get("spec")),
            api_version=data.get("apiVersion", ""),
            kind=data.get("kind", ""),
        )


def new_kuberhealthy_check(name: str, namespace: str, spec: CheckConfig) -> KuberhealthyCheck:
    """Create a khcheck resource with the given name, namespace and spec."""
    return KuberhealthyCheck(metadata=ObjectMeta(name=name, namespace=namespace), spec=spec)


@dataclass
class KuberhealthyCheckList:
    """A list of khcheck resources."""

    items: list[KuberhealthyCheck] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    api_version: str = ""
    kind: str = ""

    def deep_copy(self) -> "KuberhealthyCheckList":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = _type_meta(self.api_version, self.kind)
        out["metadata"] = dict(self.metadata)
        out["items"] = [item.to_dict() for item in self.items]
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "KuberhealthyCheckList":
        data = data or {}
        return cls(
            items=[KuberhealthyCheck.from_dict(item) for item in data.get("items") or []],
            metadata=dict(data.get("metadata") or {}),
            api_version=data.get("apiVersion", ""),
            kind=data.get("kind", ""),
        )