"""Check that resource quota usage stays under a threshold in every namespace."""

from __future__ import annotations

import logging
import math
import os
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Iterable, Mapping, Protocol

from kuberhealthy.health import CheckResult
from kuberhealthy.quantity import milli_value

log = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.9
DEFAULT_CHECK_TIME_LIMIT = timedelta(minutes=5)
TIMEOUT_MESSAGE = "Check took too long and timed out."

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class QuotaClient(Protocol):
    """A cluster client able to list namespaces and resource quotas as JSON mappings."""

    def list_namespaces(self) -> Iterable[Mapping[str, Any]]:
        ...

    def list_resource_quotas(self, namespace: str) -> Iterable[Mapping[str, Any]]:
        ...


@dataclass
class QuotaSettings:
    """Which namespaces to look at and the usage ratio that triggers an alert."""

    blacklist: list[str] = field(default_factory=list)
    whitelist: list[str] = field(default_factory=list)
    threshold: float = DEFAULT_THRESHOLD
    check_time_limit: timedelta = DEFAULT_CHECK_TIME_LIMIT
    debug: bool = False


def _parse_bool(text: str) -> bool:
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f'failed to parse DEBUG environment variable: invalid syntax "{text}"')


def _parse_float(text: str) -> float:
    if text != text.strip() or "_" in text:
        raise ValueError(f'error occurred attempting to parse THRESHOLD: "{text}"')
    try:
        return float(text)
    except ValueError as error:
        raise ValueError(f'error occurred attempting to parse THRESHOLD: "{text}"') from error


def parse_settings(environ: Mapping[str, str] | None = None) -> QuotaSettings:
    """Read DEBUG, BLACKLIST, WHITELIST and THRESHOLD; malformed values raise ValueError."""
    if environ is None:
        environ = os.environ
    settings = QuotaSettings()

    debug_text = environ.get("DEBUG", "")
    if debug_text:
        settings.debug = _parse_bool(debug_text)
    if settings.debug:
        log.info("Debug logging enabled.")
        logging.getLogger("kuberhealthy").setLevel(logging.DEBUG)

    blacklist_text = environ.get("BLACKLIST", "")
    if blacklist_text:
        settings.blacklist = blacklist_text.split(",")
        log.info("Parsed BLACKLIST: %s", settings.blacklist)
    whitelist_text = environ.get("WHITELIST", "")
    if whitelist_text:
        settings.whitelist = whitelist_text.split(",")
        log.info("Parsed WHITELIST: %s", settings.whitelist)

    threshold_text = environ.get("THRESHOLD", "")
    if threshold_text:
        settings.threshold = _parse_float(threshold_text)
        log.info("Parsed THRESHOLD: %s", settings.threshold)
    if settings.threshold > 0.99:
        log.info(
            "Given THRESHOLD is greater than 0.99, setting to default of %s",
            DEFAULT_THRESHOLD,
        )
        settings.threshold = DEFAULT_THRESHOLD
    if settings.threshold <= 0:
        log.info(
            "Threshold is less than or equal to 0, setting to default of %s",
            DEFAULT_THRESHOLD,
        )
        settings.threshold = DEFAULT_THRESHOLD
    log.info("Usage threshold set to: %s", settings.threshold)
    log.info("Check time limit set to: %s", settings.check_time_limit)
    return settings


def should_check_namespace(namespace: str, settings: QuotaSettings) -> bool:
    """Apply the blacklist first, then the whitelist; with neither, check everything."""
    if settings.blacklist and namespace in settings.blacklist:
        log.info("Skipping %s namespace (Blacklist).", namespace)
        return False
    if settings.whitelist and namespace not in settings.whitelist:
        log.info("Skipping %s namespace (Whitelist).", namespace)
        return False
    return True


def _resource_milli(resources: Mapping[str, Any], name: str) -> int:
    value = resources.get(name)
    if value is None or value == "":
        return 0
    return milli_value(str(value))


def _ratio(used: int, limit: int) -> float:
    if limit == 0:
        if used == 0:
            return math.nan
        return math.copysign(math.inf, used)
    return float(used) / float(limit)


def _format_percent(value: float) -> str:
    if math.isnan(value):
        return f"{'NaN':>6}"
    if math.isinf(value):
        return f"{'+Inf' if value > 0 else '-Inf':>6}"
    return f"{value:6.3f}"


def _violation(
    resource: str, namespace: str, threshold: float, used: int, limit: int, ratio: float
) -> str:
    return (
        f"{resource} for {namespace} namespace has reached threshold of {threshold:4.2f}: "
        f"USED: {used} LIMIT: {limit} PERCENT_USED: {_format_percent(ratio)}"
    )


def examine_namespace(
    client: QuotaClient, namespace: str, settings: QuotaSettings
) -> list[str]:
    """Return a message for each CPU or memory quota used at or above the threshold."""
    log.info("Looking at resource quotas for %s namespace.", namespace)
    try:
        quotas = list(client.list_resource_quotas(namespace))
    except Exception as error:  # noqa: BLE001 - reported as a check error
        return [f"error occurred listing resource quotas for {namespace} namespace {error}"]

    messages: list[str] = []
    for quota in quotas:
        status = quota.get("status") or {}
        hard = status.get("hard") or {}
        used = status.get("used") or {}
        used_cpu = _resource_milli(used, "cpu")
        limit_cpu = _resource_milli(hard, "cpu")
        used_memory = _resource_milli(used, "memory")
        limit_memory = _resource_milli(hard, "memory")
        log.debug(
            "Current used for %s CPU: %d Memory: %d", namespace, used_cpu, used_memory
        )
        log.debug("Limits for %s CPU: %d Memory: %d", namespace, limit_cpu, limit_memory)

        cpu_ratio = _ratio(used_cpu, limit_cpu)
        memory_ratio = _ratio(used_memory, limit_memory)
        if cpu_ratio >= settings.threshold:
            messages.append(
                _violation("cpu", namespace, settings.threshold, used_cpu, limit_cpu, cpu_ratio)
            )
        if memory_ratio >= settings.threshold:
            messages.append(
                _violation(
                    "memory",
                    namespace,
                    settings.threshold,
                    used_memory,
                    limit_memory,
                    memory_ratio,
                )
            )
    return messages


def examine_resource_quotas(
    client: QuotaClient, namespaces: Iterable[str], settings: QuotaSettings
) -> list[str]:
    """Examine the selected namespaces concurrently and gather every message."""
    names = list(namespaces)
    log.info("%d namespaces to look at.", len(names))
    selected = [name for name in names if should_check_namespace(name, settings)]
    if not selected:
        return []
    with ThreadPoolExecutor(max_workers=min(32, len(selected))) as pool:
        results = pool.map(lambda name: examine_namespace(client, name, settings), selected)
        return [message for messages in results for message in messages]


def run_resource_quota_check(client: QuotaClient, settings: QuotaSettings) -> CheckResult:
    """List namespaces, examine their quotas within the time limit and return the outcome."""
    try:
        namespaces = [
            (item.get("metadata") or {}).get("name", "") for item in client.list_namespaces()
        ]
    except Exception as error:  # noqa: BLE001 - reported as a check failure
        return CheckResult.failure(
            [f"error occurred listing namespaces from the cluster: {error}"]
        )

    outcome: queue.Queue[list[str] | BaseException] = queue.Queue(maxsize=1)

    def work() -> None:
        try:
            outcome.put(examine_resource_quotas(client, namespaces, settings))
        except Exception as error:  # noqa: BLE001 - handed to the caller
            outcome.put(error)

    threading.Thread(target=work, daemon=True).start()
    try:
        result = outcome.get(timeout=settings.check_time_limit.total_seconds())
    except queue.Empty:
        log.info("Reporting failure to kuberhealthy.")
        return CheckResult.failure([TIMEOUT_MESSAGE])

    if isinstance(result, BaseException):
        return CheckResult.failure([str(result)])
    if result:
        log.info("This check created %d errors and warnings.", len(result))
        for message in result:
            log.debug("%s", message)
        return CheckResult.failure(result)
    log.info("No errors or warnings were created during this check!")
    return CheckResult.success()