"""Choosing the master pod among several Kuberhealthy pods."""

from __future__ import annotations

import logging
import os
from typing import Any, Iterable, Mapping, Protocol

log = logging.getLogger(__name__)

_force_master = False


class MasterCalculationError(Exception):
    """Raised when the master pod cannot be determined."""


class PodLister(Protocol):
    """A cluster client able to list pods as their JSON mappings."""

    def list_pods(
        self, namespace: str, label_selector: str = "", field_selector: str = ""
    ) -> Iterable[Mapping[str, Any]]:
        ...


def debug_always_master_on() -> None:
    """Make every master query answer yes without any lookup."""
    global _force_master
    _force_master = True


def enable_debug() -> None:
    """Turn on debug logging for the package."""
    logging.getLogger("kuberhealthy").setLevel(logging.DEBUG)


def calculate_master(client: PodLister, namespace: str | None = None) -> str:
    """Return the name of the running Kuberhealthy pod that comes first alphabetically."""
    if namespace is None:
        namespace = os.environ.get("POD_NAMESPACE", "")
    log.debug("Calculating current master...")
    pods = client.list_pods(
        namespace,
        label_selector="app=kuberhealthy",
        field_selector="status.phase=Running",
    )
    names = sorted(pod.get("metadata", {}).get("name", "") for pod in pods)
    if not names:
        raise MasterCalculationError("Failed to retrieve list of Kuberhealthy pods")
    master = names[0]
    log.debug("Calculated master as %s", master)
    return master


def i_am_master(client: PodLister, namespace: str | None = None) -> bool:
    """Tell whether the pod named by POD_NAME is the calculated master."""
    if _force_master:
        return True
    master = calculate_master(client, namespace)
    my_pod = os.environ.get("POD_NAME", "")
    log.debug("My pod hostname is: %s", my_pod)
    if not my_pod:
        raise MasterCalculationError(
            "Could not retrieve environment variable, or it had no content. POD_NAME"
        )
    if my_pod.lower() == master.lower():
        log.debug("I am master")
        return True
    log.debug("I am NOT master")
    return False