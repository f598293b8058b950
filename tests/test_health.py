import io
import json

import pytest

from kuberhealthy.health import CheckResult, State, new_state
from kuberhealthy.khstate import WorkloadDetails


def test_new_state_is_ok():
    state = new_state()
    assert state.ok is True
    assert state.errors == []
    assert state.check_details == {}
    assert state.job_details == {}


def test_zero_state_not_ok():
    assert State().ok is False


def test_add_error_skips_blank():
    state = new_state()
    state.add_error("one", "", "two")
    state.add_error()
    assert state.errors == ["one", "two"]


def test_to_json_structure():
    state = new_state()
    state.current_master = "kuberhealthy-0"
    state.check_details["b"] = WorkloadDetails(ok=True, namespace="ns")
    state.check_details["a"] = WorkloadDetails(ok=False, errors=["boom"])
    data = json.loads(state.to_json())
    assert list(data) == ["OK", "Errors", "CheckDetails", "JobDetails", "CurrentMaster"]
    assert list(data["CheckDetails"]) == ["a", "b"]
    assert data["CheckDetails"]["a"]["Errors"] == ["boom"]
    assert data["CurrentMaster"] == "kuberhealthy-0"


def test_to_json_indented():
    lines = new_state().to_json().splitlines()
    assert lines[0] == "{"
    assert lines[1].startswith('  "OK": true')


def test_html_characters_escaped():
    state = new_state()
    state.add_error("<b>&")
    text = state.to_json()
    assert "<" not in text and ">" not in text and "&" not in text
    assert json.loads(text)["Errors"] == ["<b>&"]


def test_write_http_status_response():
    state = new_state()
    state.add_error("failure")
    buffer = io.BytesIO()
    state.write_http_status_response(buffer)
    assert buffer.getvalue().decode("utf-8") == state.to_json()


def test_write_error_propagates():
    class Broken:
        def write(self, data):
            raise OSError("closed")

    with pytest.raises(OSError):
        new_state().write_http_status_response(Broken())


def test_check_result():
    assert CheckResult.success() == CheckResult(ok=True, errors=[])
    failed = CheckResult.failure(["a", "b"])
    assert failed.ok is False
    assert failed.errors == ["a", "b"]
    assert CheckResult.failure("single").errors == ["single"]