"""Check that a network endpoint accepts connections."""

from __future__ import annotations

import logging
import os
import queue
import socket
import threading
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Mapping

from kuberhealthy.health import CheckResult

log = logging.getLogger(__name__)

DEFAULT_CHECK_TIMEOUT = timedelta(seconds=20)
TIMEOUT_MESSAGE = "Failed to complete network connection check in time! Timeout was reached."
NAMESPACE_FILE = Path("/var/run/secrets/kubernetes.io/serviceaccount/namespace")

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_FAMILIES = {
    "tcp": (socket.AF_UNSPEC, socket.SOCK_STREAM),
    "tcp4": (socket.AF_INET, socket.SOCK_STREAM),
    "tcp6": (socket.AF_INET6, socket.SOCK_STREAM),
    "udp": (socket.AF_UNSPEC, socket.SOCK_DGRAM),
    "udp4": (socket.AF_INET, socket.SOCK_DGRAM),
    "udp6": (socket.AF_INET6, socket.SOCK_DGRAM),
}


class NetworkCheckError(Exception):
    """Raised when the connection target cannot be reached."""


def split_address(full_address: str) -> tuple[str, str]:
    """Split ``network://host:port`` into its network and address; tcp is the default."""
    network, separator, address = full_address.partition("://")
    if separator:
        return network, address
    return "tcp", full_address


def _parse_bool(text: str) -> bool:
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f'invalid boolean "{text}"')


@dataclass
class NetworkSettings:
    """The target to connect to and whether it is expected to be unreachable."""

    connection_target: str
    target_unreachable: bool = False
    check_timeout: timedelta = DEFAULT_CHECK_TIMEOUT
    namespace: str = ""


def _read_namespace() -> str:
    try:
        data = NAMESPACE_FILE.read_text()
    except OSError as error:
        log.warning("Failed to open namespace file: %s", error)
        return ""
    if data:
        log.info("Found pod namespace: %s", data)
    return data


def settings_from_env(environ: Mapping[str, str] | None = None) -> NetworkSettings:
    """Read CONNECTION_TARGET and CONNECTION_TARGET_UNREACHABLE.

    A missing target raises ValueError; an unparsable flag leaves it false.
    """
    if environ is None:
        environ = os.environ
    target = environ.get("CONNECTION_TARGET", "")
    if not target:
        raise ValueError("CONNECTION_TARGET environment variable has not been set.")
    settings = NetworkSettings(connection_target=target)
    try:
        settings.target_unreachable = _parse_bool(
            environ.get("CONNECTION_TARGET_UNREACHABLE", "")
        )
    except ValueError:
        log.info("CONNECTION_TARGET_UNREACHABLE could not be parsed.")
        return settings
    settings.namespace = _read_namespace()
    log.info("Check time limit set to: %s", settings.check_timeout)
    return settings


def _split_host_port(address: str) -> tuple[str, int]:
    host, separator, port = address.rpartition(":")
    if not separator:
        raise ValueError(f"address {address}: missing port in address")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        number = int(port)
    except ValueError as error:
        raise ValueError(f"address {address}: invalid port") from error
    if not 0 <= number <= 65535:
        raise ValueError(f"address {address}: invalid port")
    return host, number


def _dial(network: str, address: str, timeout: float) -> None:
    if network not in _FAMILIES:
        raise ValueError(f"dial {network}: unknown network {network}")
    family, kind = _FAMILIES[network]
    host, port = _split_host_port(address)
    last_error: Exception | None = None
    for af, socktype, proto, _, sockaddr in socket.getaddrinfo(
        host or None, port, family, kind
    ):
        with socket.socket(af, socktype, proto) as sock:
            sock.settimeout(timeout)
            try:
                sock.connect(sockaddr)
            except OSError as error:
                last_error = error
                continue
            return
    if last_error is None:
        raise OSError(f"dial {network} {address}: no addresses found")
    raise last_error


@dataclass
class NetworkConnectionChecker:
    """Connects to the configured target and reports the outcome."""

    settings: NetworkSettings

    def do_checks(self) -> None:
        """Open and close a connection to the target; raise NetworkCheckError on failure."""
        target = self.settings.connection_target
        network, address = split_address(target)
        try:
            _dial(network, address, self.settings.check_timeout.total_seconds())
        except (OSError, ValueError) as error:
            message = f"Network connection check determined that {target} is DOWN: {error}"
            log.error("%s", message)
            raise NetworkCheckError(message) from error

    def run(self) -> CheckResult:
        """Run the check within the time limit and return the outcome."""
        log.info("Running network connection checker")
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
            log.info("Cancelling check and shutting down due to timeout.")
            return CheckResult.failure([TIMEOUT_MESSAGE])
        if error is not None and not self.settings.target_unreachable:
            return CheckResult.failure([str(error)])
        return CheckResult.success()