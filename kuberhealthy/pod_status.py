"""Check that pods are in a healthy lifecycle phase once they are old enough."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping, Protocol

from kuberhealthy.durations import parse_duration
from kuberhealthy.health import CheckResult
from kuberhealthy.meta import _parse_time

log = logging.getLogger(__name__)

ALL_NAMESPACES = ""
POD_LABEL_SELECTOR = "app!=kuberhealthy-check,source!=kuberhealthy"

_HEALTHY_PHASES = frozenset({"Running", "Succeeded"})
_UNHEALTHY_PHASES = frozenset({"Pending", "Failed", "Unknown"})


class InvalidSkipDurationError(ValueError):
    """Raised when the skip duration cannot be parsed."""


class PodLister(Protocol):
    """A cluster client able to list pods as their JSON mappings."""

    def list_pods(
        self, namespace: str, label_selector: str = "", field_selector: str = ""
    ) -> Iterable[Mapping[str, Any]]:
        ...


def _creation_time(pod: Mapping[str, Any]) -> datetime:
    created = _parse_time((pod.get("metadata") or {}).get("creationTimestamp"))
    # A pod without a creation time counts as arbitrarily old.
    return created or datetime.min.replace(tzinfo=timezone.utc)


def find_pods_not_running(
    client: PodLister,
    namespace: str,
    skip_duration: timedelta | str,
    now: datetime | None = None,
) -> list[str]:
    """Return a failure message for every old enough pod in an unhealthy phase.

    Pods younger than ``skip_duration`` are skipped. An empty namespace means
    all namespaces. A duration string that cannot be parsed raises
    InvalidSkipDurationError.
    """
    if namespace == ALL_NAMESPACES:
        log.info("looking for pods across all namespaces, this requires a cluster role")
    else:
        log.info("looking for pods in namespace %s", namespace)

    pods = list(client.list_pods(namespace, label_selector=POD_LABEL_SELECTOR))

    if isinstance(skip_duration, str):
        try:
            skip_duration = parse_duration(skip_duration)
        except ValueError as error:
            raise InvalidSkipDurationError(
                f"failed to parse skip duration: {error}"
            ) from error

    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    skip_barrier = now - skip_duration

    failures: list[str] = []
    for pod in pods:
        metadata = pod.get("metadata") or {}
        name = metadata.get("name", "")
        pod_namespace = metadata.get("namespace", "")
        if _creation_time(pod) > skip_barrier:
            log.info("skipping checks on pod because it is too young: %s", name)
            continue

        phase = (pod.get("status") or {}).get("phase", "")
        if phase in _HEALTHY_PHASES:
            continue
        if phase in _UNHEALTHY_PHASES:
            failures.append(
                f"pod: {name} in namespace: {pod_namespace} is in pod status phase {phase} "
            )
        else:
            log.info(
                "pod: %s in namespace: %s is not in one of the five possible "
                "pod status phases %s ",
                name,
                pod_namespace,
                phase,
            )
    return failures


def run_pod_status_check(
    client: PodLister, environ: Mapping[str, str] | None = None
) -> CheckResult:
    """Run the check with settings from TARGET_NAMESPACE and SKIP_DURATION."""
    if environ is None:
        environ = os.environ
    namespace = environ.get("TARGET_NAMESPACE", "")
    skip_duration = environ.get("SKIP_DURATION", "")
    try:
        failures = find_pods_not_running(client, namespace, skip_duration)
    except InvalidSkipDurationError as error:
        log.error("%s", error)
        return CheckResult.failure([str(error)])
    except Exception as error:  # noqa: BLE001 - any listing error is reported
        return CheckResult.failure([str(error)])

    if failures:
        log.info("Amount of failures found: %d", len(failures))
        return CheckResult.failure(failures)
    log.info("Reporting Success, no unhealthy pods found.")
    return CheckResult.success()