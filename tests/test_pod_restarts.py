import threading
from datetime import timedelta

import pytest

from kuberhealthy.pod_restarts import (
    DEFAULT_MAX_FAILURES_ALLOWED,
    TIMEOUT_MESSAGE,
    PodRestartsChecker,
    PodRestartsSettings,
    settings_from_env,
)


def backoff_event(pod_name, count, namespace="test-namespace", kind="Pod", reason="BackOff"):
    return {
        "metadata": {"namespace": namespace},
        "involvedObject": {"kind": kind, "name": pod_name, "namespace": namespace},
        "reason": reason,
        "count": count,
        "type": "Warning",
    }


class FakeClient:
    def __init__(self, events, pods=(), get_error=None):
        self.events = events
        self.pods = set(pods)
        self.get_error = get_error
        self.field_selectors = []

    def list_events(self, namespace, field_selector=""):
        self.field_selectors.append(field_selector)
        return [
            e for e in self.events if not namespace or e["metadata"]["namespace"] == namespace
        ]

    def get_pod(self, namespace, name):
        if self.get_error is not None:
            raise self.get_error
        if (namespace, name) not in self.pods:
            raise LookupError(f'pods "{name}" not found')
        return {"metadata": {"name": name, "namespace": namespace}}


class SlowClient:
    def __init__(self):
        self.release = threading.Event()

    def list_events(self, namespace, field_selector=""):
        self.release.wait(5)
        return []

    def get_pod(self, namespace, name):
        return {}


def test_settings_defaults():
    settings = settings_from_env({})
    assert settings.namespace == ""
    assert settings.max_failures_allowed == DEFAULT_MAX_FAILURES_ALLOWED == 10


def test_settings_from_values():
    settings = settings_from_env({"POD_NAMESPACE": "kube-system", "MAX_FAILURES_ALLOWED": "3"})
    assert settings.namespace == "kube-system"
    assert settings.max_failures_allowed == 3


@pytest.mark.parametrize("raw", ["three", "1.5", " 3", "99999999999"])
def test_settings_bad_max_failures(raw):
    with pytest.raises(ValueError):
        settings_from_env({"MAX_FAILURES_ALLOWED": raw})


def test_do_checks_records_bad_pods():
    events = [
        backoff_event("crashy", 11),
        backoff_event("fine", 10),
        backoff_event("other-reason", 50, reason="Failed"),
        backoff_event("a-node", 50, kind="Node"),
    ]
    client = FakeClient(events, pods=[("test-namespace", "crashy")])
    checker = PodRestartsChecker(client, PodRestartsSettings(namespace="test-namespace"))
    checker.do_checks()
    assert client.field_selectors == ["type=Warning"]
    assert checker.bad_pods == {
        "test-namespace/crashy": "Found: 11 `BackOff` events for pod: crashy "
        "in namespace: test-namespace"
    }


def test_missing_bad_pod_is_removed():
    checker = PodRestartsChecker(FakeClient([backoff_event("gone", 20)]))
    checker.do_checks()
    assert checker.bad_pods == {}


def test_verify_propagates_other_errors():
    client = FakeClient([], get_error=RuntimeError("forbidden"))
    checker = PodRestartsChecker(client)
    checker.bad_pods["ns/pod"] = "message"
    with pytest.raises(RuntimeError, match="forbidden"):
        checker.verify_bad_pod_restart_exists("ns/pod")
    assert "ns/pod" in checker.bad_pods


def test_verify_not_found_message_removes_pod():
    client = FakeClient([], get_error=RuntimeError('pods "pod" not found'))
    checker = PodRestartsChecker(client)
    checker.bad_pods["ns/pod"] = "message"
    checker.verify_bad_pod_restart_exists("ns/pod")
    assert checker.bad_pods == {}


def test_run_reports_failure_for_bad_pods():
    client = FakeClient([backoff_event("crashy", 12)], pods=[("test-namespace", "crashy")])
    result = PodRestartsChecker(client).run()
    assert not result.ok
    assert result.errors == [
        "Found: 12 `BackOff` events for pod: crashy in namespace: test-namespace"
    ]


def test_run_reports_success():
    result = PodRestartsChecker(FakeClient([backoff_event("calm", 2)])).run()
    assert result.ok
    assert result.errors == []


def test_run_reports_check_error():
    client = FakeClient([backoff_event("crashy", 12)], get_error=RuntimeError("forbidden"))
    result = PodRestartsChecker(client).run()
    assert not result.ok
    assert result.errors[0] == "forbidden"
    assert len(result.errors) == 2


def test_run_times_out():
    client = SlowClient()
    settings = PodRestartsSettings(check_timeout=timedelta(milliseconds=50))
    try:
        result = PodRestartsChecker(client, settings).run()
    finally:
        client.release.set()
    assert not result.ok
    assert result.errors == [TIMEOUT_MESSAGE]