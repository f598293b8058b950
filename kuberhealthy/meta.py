"""API group information and object metadata shared by the custom resources."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

GROUP_NAME = "comcast.github.io"
GROUP_VERSION = "v1"


@dataclass(frozen=True)
class GroupVersion:
    """An API group together with its version."""

    group: str
    version: str

    def to_api_version(self) -> str:
        """Return the ``apiVersion`` string for this group and version."""
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"


SCHEME_GROUP_VERSION = GroupVersion(GROUP_NAME, GROUP_VERSION)


def _format_time(moment: datetime) -> str:
    """Format a timestamp as RFC 3339 in UTC with second precision."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _parse_time(text: str | None) -> datetime | None:
    """Parse an RFC 3339 timestamp; empty or missing values give None."""
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text).astimezone(timezone.utc)


@dataclass
class ObjectMeta:
    """Metadata carried by every stored object."""

    name: str = ""
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    uid: str = ""
    resource_version: str = ""
    generation: int = 0
    creation_timestamp: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form, leaving out empty fields."""
        out: dict[str, Any] = {}
        if self.name:
            out["name"] = self.name
        if self.namespace:
            out["namespace"] = self.namespace
        if self.uid:
            out["uid"] = self.uid
        if self.resource_version:
            out["resourceVersion"] = self.resource_version
        if self.generation:
            out["generation"] = self.generation
        if self.creation_timestamp is not None:
            out["creationTimestamp"] = _format_time(self.creation_timestamp)
        if self.labels:
            out["labels"] = dict(self.labels)
        if self.annotations:
            out["annotations"] = dict(self.annotations)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ObjectMeta":
        """Build metadata from its JSON form."""
        data = data or {}
        return cls(
            name=data.get("name", ""),
            namespace=data.get("namespace", ""),
            labels=dict(data.get("labels") or {}),
            annotations=dict(data.get("annotations") or {}),
            uid=data.get("uid", ""),
            resource_version=data.get("resourceVersion", ""),
            generation=int(data.get("generation") or 0),
            creation_timestamp=_parse_time(data.get("creationTimestamp")),
        )