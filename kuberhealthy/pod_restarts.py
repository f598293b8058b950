"""Check for pods that keep restarting, judged by their BackOff warning events."""

from __future__ import annotations

import logging
import os
import queue
import re
import threading
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Iterable, Mapping, Protocol

from kuberhealthy.health import CheckResult

log = logging.getLogger(__name__)

DEFAULT_MAX_FAILURES_ALLOWED = 10
DEFAULT_CHECK_TIMEOUT = timedelta(minutes=10)
TIMEOUT_MESSAGE = "Failed to complete Pod Restart check in time! Timeout was reached."

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1
_INTEGER = re.compile(r"[+-]?[0-9]+")


class EventClient(Protocol):
    """A cluster client able to list events and fetch pods as JSON mappings."""

    def list_events(
        self, namespace: str, field_selector: str = ""
    ) -> Iterable[Mapping[str, Any]]:
        ...

    def get_pod(self, namespace: str, name: str) -> Mapping[str, Any]:
        """Return the pod; raise LookupError if it does not exist."""
        ...


@dataclass
class PodRestartsSettings:
    """Where to look and how many BackOff events a pod may have."""

    namespace: str = ""
    max_failures_allowed: int = DEFAULT_MAX_FAILURES_ALLOWED
    check_timeout: timedelta = DEFAULT_CHECK_TIMEOUT


def settings_from_env(environ: Mapping[str, str] | None = None) -> PodRestartsSettings:
    """Read POD_NAMESPACE and MAX_FAILURES_ALLOWED; bad numbers raise ValueError."""
    if environ is None:
        environ = os.environ
    namespace = environ.get("POD_NAMESPACE", "")
    if namespace:
        log.info("Looking for pods in namespace: %s", namespace)
    else:
        log.info("Looking for pods across all namespaces, this requires a cluster role")

    max_failures = DEFAULT_MAX_FAILURES_ALLOWED
    raw = environ.get("MAX_FAILURES_ALLOWED", "")
    if raw:
        if not _INTEGER.fullmatch(raw):
            raise ValueError(f"Error converting maxFailuresAllowed: {raw!r} to int")
        max_failures = int(raw)
        if not _INT32_MIN <= max_failures <= _INT32_MAX:
            raise ValueError(f"maxFailuresAllowed {raw!r} is out of range")
    return PodRestartsSettings(namespace=namespace, max_failures_allowed=max_failures)


def _is_not_found(error: Exception) -> bool:
    return isinstance(error, LookupError) or "not found" in str(error)


@dataclass
class PodRestartsChecker:
    """Finds pods with more BackOff events than allowed."""

    client: EventClient
    settings: PodRestartsSettings = field(default_factory=PodRestartsSettings)
    bad_pods: dict[str, str] = field(default_factory=dict)

    def run(self) -> CheckResult:
        """Run the checks within the time limit and return the outcome."""
        log.info("Running Pod Restarts checker")
        outcome: queue.Queue[Exception | None] = queue.Queue(maxsize=1)

        def work() -> None:
            try:
                self.do_checks()
            except Exception as error:  # noqa: BLE001 - handed to the caller
                outcome.put(error)
            else:
                outcome.put(None)

        threading.Thread(target=work, daemon=True).start()
        try:
            error = outcome.get(timeout=self.settings.check_timeout.total_seconds())
        except queue.Empty:
            return CheckResult.failure([TIMEOUT_MESSAGE])

        if self.bad_pods or error is not None:
            messages = []
            if error is not None:
                log.error("%s", error)
                messages.append(str(error))
            messages.extend(self.bad_pods.values())
            return CheckResult.failure(messages)
        return CheckResult.success()

    def do_checks(self) -> None:
        """Record pods whose BackOff event count exceeds the allowed maximum."""
        namespace = self.settings.namespace
        log.info(
            "Checking for pod BackOff events for all pods in the namespace: %s", namespace
        )
        events = list(self.client.list_events(namespace, field_selector="type=Warning"))
        if events:
            log.info("Found `Warning` events in the namespace: %s", namespace)

        for event in events:
            involved = event.get("involvedObject") or {}
            count = int(event.get("count") or 0)
            if (
                involved.get("kind") == "Pod"
                and event.get("reason") == "BackOff"
                and count > self.settings.max_failures_allowed
            ):
                pod_name = involved.get("name", "")
                event_namespace = (event.get("metadata") or {}).get("namespace", "")
                message = (
                    f"Found: {count} `BackOff` events for pod: {pod_name} "
                    f"in namespace: {event_namespace}"
                )
                log.info("%s", message)
                key = f"{involved.get('namespace', '')}/{pod_name}"
                self.bad_pods[key] = message

        for pod in list(self.bad_pods):
            self.verify_bad_pod_restart_exists(pod)

    def verify_bad_pod_restart_exists(self, pod: str) -> None:
        """Forget a bad pod (``namespace/name``) that no longer exists."""
        namespace, _, pod_name = pod.partition("/")
        try:
            self.client.get_pod(namespace, pod_name)
        except Exception as error:
            if not _is_not_found(error):
                log.info("Error getting bad pod: %s %s", pod_name, error)
                raise
            log.info(
                "Bad Pod: %s no longer exists. Removing from bad pods map", pod_name
            )
            self.bad_pods.pop(pod, None)