"""Overall health state shown on the status page, and check results."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Iterable

from kuberhealthy.khstate import WorkloadDetails

log = logging.getLogger(__name__)

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


@dataclass
class State:
    """Results of all managed checks and jobs with a top-level OK and error list."""

    ok: bool = False
    errors: list[str] = field(default_factory=list)
    check_details: dict[str, WorkloadDetails] = field(default_factory=dict)
    job_details: dict[str, WorkloadDetails] = field(default_factory=dict)
    current_master: str = ""

    def add_error(self, *args: str) -> None:
        """Append errors, skipping blank ones."""
        for message in args:
            if not message:
                log.warning("AddError was called but the error was blank so it was skipped.")
                continue
            log.debug("Appending error: %s", message)
            self.errors.append(message)

    def _as_dict(self) -> dict[str, Any]:
        return {
            "OK": self.ok,
            "Errors": list(self.errors),
            "CheckDetails": {
                name: self.check_details[name].to_dict() for name in sorted(self.check_details)
            },
            "JobDetails": {
                name: self.job_details[name].to_dict() for name in sorted(self.job_details)
            },
            "CurrentMaster": self.current_master,
        }

    def to_json(self) -> str:
        """Return the state as indented JSON with HTML-sensitive characters escaped."""
        text = json.dumps(self._as_dict(), indent=2, ensure_ascii=False)
        for char, escaped in _HTML_ESCAPES.items():
            text = text.replace(char, escaped)
        return text

    def write_http_status_response(self, writer: BinaryIO) -> None:
        """Write the JSON form of the state to a binary writer."""
        body = self.to_json().encode("utf-8")
        try:
            writer.write(body)
        except OSError as error:
            log.error("Error writing response to caller: %s", error)
            raise


def new_state() -> State:
    """Return a fresh, healthy state with no errors."""
    return State(ok=True)


@dataclass
class CheckResult:
    """The outcome a check reports: success, or failure with error messages."""

    ok: bool
    errors: list[str] = field(default_factory=list)

    @classmethod
    def success(cls) -> "CheckResult":
        return cls(ok=True, errors=[])

    @classmethod
    def failure(cls, errors: Iterable[str] | str) -> "CheckResult":
        if isinstance(errors, str):
            errors = [errors]
        return cls(ok=False, errors=list(errors))