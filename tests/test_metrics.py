import io

import pytest

from kuberhealthy.health import State
from kuberhealthy.khstate import WorkloadDetails
from kuberhealthy.metrics import (
    MetricsClient,
    error_state_metrics,
    generate_metrics,
    write_metric_error,
)


def parse_metrics(output):
    metric_map = {}
    for line in output.split("\n"):
        if not line or line.startswith("#"):
            continue
        name, value = line.rsplit(" ", 1)
        metric_map[name] = value
    return metric_map


def test_empty_state():
    metrics = parse_metrics(generate_metrics(State()))
    assert metrics['kuberhealthy_running{current_master=""}'] == "1"
    assert metrics["kuberhealthy_cluster_state"] == "0"


def test_ok_state():
    metrics = parse_metrics(generate_metrics(State(ok=True)))
    assert metrics['kuberhealthy_running{current_master=""}'] == "1"
    assert metrics["kuberhealthy_cluster_state"] == "1"


def test_not_ok_state():
    metrics = parse_metrics(generate_metrics(State(ok=False)))
    assert metrics["kuberhealthy_cluster_state"] == "0"


def test_state_with_master():
    metrics = parse_metrics(generate_metrics(State(current_master="testMaster")))
    assert metrics['kuberhealthy_running{current_master="testMaster"}'] == "1"
    assert metrics["kuberhealthy_cluster_state"] == "0"


def test_checks_good_and_bad():
    state = State(
        check_details={
            "good": WorkloadDetails(ok=True),
            "bad": WorkloadDetails(ok=False),
            "": WorkloadDetails(ok=True),
        }
    )
    metrics = parse_metrics(generate_metrics(state))
    assert metrics["kuberhealthy_cluster_state"] == "0"
    assert metrics['kuberhealthy_check{check="good",namespace="",status="1",error=""}'] == "1"
    assert metrics['kuberhealthy_check{check="bad",namespace="",status="0",error=""}'] == "0"
    assert metrics['kuberhealthy_check{check="",namespace="",status="1",error=""}'] == "1"


def test_check_duration_parsed():
    state = State(
        check_details={"c": WorkloadDetails(ok=True, namespace="ns", run_duration="1m30s")}
    )
    metrics = parse_metrics(generate_metrics(state))
    assert metrics['kuberhealthy_check_duration_seconds{check="c",namespace="ns"}'] == "90.000000"


def test_missing_or_bad_duration_is_zero():
    state = State(
        check_details={
            "empty": WorkloadDetails(ok=True),
            "bad": WorkloadDetails(ok=True, run_duration="nonsense"),
        }
    )
    metrics = parse_metrics(generate_metrics(state))
    assert metrics['kuberhealthy_check_duration_seconds{check="empty",namespace=""}'] == "0.000000"
    assert metrics['kuberhealthy_check_duration_seconds{check="bad",namespace=""}'] == "0.000000"


def test_check_errors_joined_and_quotes_replaced():
    state = State(check_details={"c": WorkloadDetails(errors=['a "x"', "b"])})
    metrics = parse_metrics(generate_metrics(state))
    assert metrics["kuberhealthy_check{check=\"c\",namespace=\"\",status=\"0\",error=\"a 'x'|b\"}"] == "0"


def test_job_errors_keep_trailing_separator():
    state = State(job_details={"j": WorkloadDetails(ok=False, errors=["e1", "e2"])})
    metrics = parse_metrics(generate_metrics(state))
    assert metrics['kuberhealthy_job{check="j",namespace="",status="0",error="e1|e2|"}'] == "0"
    assert metrics['kuberhealthy_job_duration_seconds{check="j",namespace=""}'] == "0.000000"


def test_help_and_type_precede_samples():
    state = State(check_details={"c": WorkloadDetails(ok=True)})
    lines = generate_metrics(state).split("\n")
    index = lines.index("# TYPE kuberhealthy_check gauge")
    assert lines[index - 1] == "# HELP kuberhealthy_check Shows the status of a Kuberhealthy check"
    assert lines[index + 1].startswith('kuberhealthy_check{check="c"')


def test_error_state_metrics():
    lines = error_state_metrics(State(current_master="testMaster")).split("\n")
    assert lines[2] == 'kuberhealthy_running{currentMaster="testMaster"} 0'
    assert lines[2].split(" ")[1] == "0"

    lines = error_state_metrics(State()).split("\n")
    assert lines[2] == 'kuberhealthy_running{currentMaster=""} 0'
    assert lines[2].split(" ")[1] == "0"


@pytest.mark.parametrize("state", [State(current_master="testMaster"), State()])
def test_write_metric_error(state):
    buffer = io.BytesIO()
    write_metric_error(buffer, state)
    assert buffer.getvalue().decode("utf-8") == error_state_metrics(state)


def test_write_metric_error_propagates_write_failure():
    class BrokenWriter:
        def write(self, data):
            raise OSError("closed")

    with pytest.raises(OSError):
        write_metric_error(BrokenWriter(), State())


def test_metrics_client_is_abstract():
    with pytest.raises(TypeError):
        MetricsClient()