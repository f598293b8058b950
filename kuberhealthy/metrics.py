"""Prometheus-format metrics for the overall health state."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Mapping

from kuberhealthy.durations import parse_duration
from kuberhealthy.health import State
from kuberhealthy.khstate import WorkloadDetails

log = logging.getLogger(__name__)

Metric = list[dict[str, Any]]


class MetricsClient(ABC):
    """Something that metrics can be pushed to."""

    @abstractmethod
    def push(self, points: Metric, tags: Mapping[str, str]) -> None:
        """Push a list of name/value maps with the given tags."""


def _duration_seconds(run_duration: str, metric_name: str) -> str:
    try:
        seconds = parse_duration(run_duration).total_seconds()
    except ValueError as error:
        log.error(
            "Error parsing run duration: %s for metric: %s error: %s",
            run_duration,
            metric_name,
            error,
        )
        seconds = 0.0
    return f"{seconds:f}"


def _workload_metrics(
    prefix: str,
    details: Mapping[str, WorkloadDetails],
    trim_errors: bool,
) -> tuple[dict[str, str], dict[str, str]]:
    states: dict[str, str] = {}
    durations: dict[str, str] = {}
    for name in sorted(details):
        detail = details[name]
        status = "1" if detail.ok else "0"
        if trim_errors:
            errors = "|".join(detail.errors).replace('"', "'")
        else:
            errors = "".join(f"{error}|" for error in detail.errors)
        metric_name = (
            f'{prefix}{{check="{name}",namespace="{detail.namespace}",'
            f'status="{status}",error="{errors}"}}'
        )
        duration_name = (
            f'{prefix}_duration_seconds{{check="{name}",namespace="{detail.namespace}"}}'
        )
        states[metric_name] = status
        durations[duration_name] = _duration_seconds(detail.run_duration, metric_name)
    return states, durations


def _section(name: str, help_text: str, values: Mapping[str, str]) -> list[str]:
    lines = [f"# HELP {name} {help_text}", f"# TYPE {name} gauge"]
    lines.extend(f"{metric} {value}" for metric, value in values.items())
    return lines


def generate_metrics(state: State) -> str:
    """Render the state in the Prometheus text exposition format."""
    health_status = "1" if state.ok else "0"
    lines = [
        "# HELP kuberhealthy_running Shows if kuberhealthy is running error free",
        "# TYPE kuberhealthy_running gauge",
        f'kuberhealthy_running{{current_master="{state.current_master}"}} 1',
        "# HELP kuberhealthy_cluster_state Shows the status of the cluster",
        "# TYPE kuberhealthy_cluster_state gauge",
        f"kuberhealthy_cluster_state {health_status}",
    ]

    check_state, check_duration = _workload_metrics(
        "kuberhealthy_check", state.check_details, trim_errors=True
    )
    job_state, job_duration = _workload_metrics(
        "kuberhealthy_job", state.job_details, trim_errors=False
    )

    # Each HELP/TYPE pair is directly followed by its own samples.
    lines += _section(
        "kuberhealthy_check", "Shows the status of a Kuberhealthy check", check_state
    )
    lines += _section(
        "kuberhealthy_check_duration_seconds",
        "Shows the check run duration of a Kuberhealthy check",
        check_duration,
    )
    lines += _section("kuberhealthy_job", "Shows the status of a Kuberhealthy job", job_state)
    lines += _section(
        "kuberhealthy_job_duration_seconds",
        "Shows the job run duration of a Kuberhealthy job",
        job_duration,
    )
    return "\n".join(lines) + "\n"


def error_state_metrics(state: State) -> str:
    """Return the metric that shows Kuberhealthy itself is in an error state."""
    return (
        "# HELP kuberhealthy_running Shows if kuberhealthy is running error free\n"
        "# TYPE kuberhealthy_running gauge\n"
        f'kuberhealthy_running{{currentMaster="{state.current_master}"}} 0'
    )


def write_metric_error(writer: BinaryIO, state: State) -> None:
    """Write the error-state metric to a binary writer."""
    try:
        writer.write(error_state_metrics(state).encode("utf-8"))
    except OSError as error:
        log.warning("Error writing health check results to caller: %s", error)
        raise